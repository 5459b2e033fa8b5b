from functools import wraps

from flask import Blueprint, abort, session

from ..models import User, db

admin_bp = Blueprint("admin", __name__)


def is_admin():
    return bool(session.get("is_admin"))


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_admin():
            abort(403)
        return f(*args, **kwargs)

    return decorated_function


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        abort(404)
    return user
