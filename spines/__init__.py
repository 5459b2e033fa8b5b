import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from flask import Flask, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate, upgrade
from flask_wtf.csrf import CSRFProtect

from .config import config_by_name
from .models import db

login_manager = LoginManager()
login_manager.session_protection = "strong"

# In-memory storage; counters reset on process restart. Acceptable for
# single-worker SQLite deployments. For multi-worker setups use Redis storage.
limiter = Limiter(key_func=get_remote_address)
migrate = Migrate()
csrf = CSRFProtect()


def create_app(config_name=None):
    # Load .env so gunicorn (production) picks up env vars too
    from dotenv import load_dotenv

    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    config_cls = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_cls)
    if hasattr(config_cls, "init_app"):
        config_cls.init_app(app)

    if app.config.get("TRUST_PROXY"):
        from werkzeug.middleware.proxy_fix import ProxyFix

        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    _configure_logging(app)

    # Init extensions
    db.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    from .catalog.client import init_catalog

    init_catalog(app)

    from .models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required."}), 401

    # Register blueprints
    from .activity.routes import events_bp
    from .admin.routes import admin_bp
    from .auth.routes import auth_bp
    from .profile.routes import profile_bp
    from .public.routes import public_bp
    from .shelves.routes import shelves_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(shelves_bp, url_prefix="/my-books")
    app.register_blueprint(profile_bp, url_prefix="/profile")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    from .errors import register_error_handlers

    register_error_handlers(app)

    # Security headers
    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not app.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; img-src 'self' data: https://books.google.com; "
                "frame-ancestors 'self'; object-src 'none'; base-uri 'self'"
            )
        return response

    if app.config.get("SCHEDULER_ENABLED"):
        from .scheduler import init_scheduler

        init_scheduler(app)

    # Health check endpoints
    @app.route("/ping")
    def ping():
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
        }, 200

    @app.route("/health")
    def health():
        result = {"timestamp": datetime.now(UTC).isoformat()}

        scheduler_ok = True
        scheduler = getattr(app, "scheduler", None)
        if scheduler is None:
            result["scheduler"] = {"running": False, "reason": "disabled"}
        else:
            try:
                running = bool(scheduler.running)
                jobs = [
                    {"id": job.id, "next_run": job.next_run_time.isoformat() if job.next_run_time else None}
                    for job in scheduler.get_jobs()
                ]
            except Exception:
                app.logger.exception("Health check scheduler probe failed.")
                result["scheduler"] = {"running": False, "reason": "probe_failed"}
                scheduler_ok = False
            else:
                failing_jobs = _failing_jobs(app)
                result["scheduler"] = {"running": running, "jobs": jobs, "failing_jobs": failing_jobs}
                scheduler_ok = running and not failing_jobs

        try:
            db.session.execute(db.text("SELECT 1"))
            result["database"] = {"status": "ok"}
        except Exception:
            app.logger.exception("Health check database probe failed.")
            result["database"] = {"status": "error", "error": "unavailable"}

        db_ok = result["database"]["status"] == "ok"
        all_ok = scheduler_ok and db_ok
        result["status"] = "ok" if all_ok else "degraded"
        return result, 200 if all_ok else 503

    # Apply pending Alembic migrations on startup
    with app.app_context():
        upgrade()

    return app


def _failing_jobs(app):
    """Job ids whose consecutive failures reached SCHEDULER_MAX_CONSECUTIVE_FAILURES."""
    threshold = max(1, int(app.config.get("SCHEDULER_MAX_CONSECUTIVE_FAILURES", 3)))
    state = getattr(app, "scheduler_state", None) or {}
    lock = getattr(app, "scheduler_state_lock", None)
    if lock is not None:
        with lock:
            jobs = dict(state.get("jobs", {}))
    else:
        jobs = dict(state.get("jobs", {}))
    return sorted(
        job_id for job_id, entry in jobs.items() if int(entry.get("consecutive_failures", 0)) >= threshold
    )


def _configure_logging(app):
    """Set up file-based logging with rotation for production."""
    if app.debug or app.testing:
        return

    log_dir = Path(app.root_path).parent / "logs"
    log_dir.mkdir(exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / "spines.log",
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=5,
    )
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
    # Service modules log through their own module loggers.
    logging.getLogger(__name__).addHandler(file_handler)
    logging.getLogger(__name__).setLevel(logging.INFO)
