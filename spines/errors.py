from flask import jsonify, request


def _error(message, status):
    return jsonify({"error": message}), status


def register_error_handlers(app):
    @app.errorhandler(400)
    def bad_request(e):
        return _error(getattr(e, "description", None) or "Bad request.", 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return _error("Authentication required.", 401)

    @app.errorhandler(403)
    def forbidden(e):
        app.logger.warning("403 Forbidden: %s", request.path)
        return _error("Forbidden.", 403)

    @app.errorhandler(404)
    def not_found(e):
        return _error("Not found.", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error("Method not allowed.", 405)

    @app.errorhandler(409)
    def conflict(e):
        return _error(getattr(e, "description", None) or "Conflict.", 409)

    @app.errorhandler(429)
    def too_many_requests(e):
        return _error("Too many requests. Please slow down.", 429)

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.exception("Internal server error: %s", e)
        return _error("Internal server error.", 500)
