from flask import jsonify

from ..models import User
from . import routes_books, routes_users  # noqa: F401
from .common import admin_bp, admin_required


@admin_bp.route("/")
@admin_required
def index():
    return jsonify({"users": User.query.count()})
