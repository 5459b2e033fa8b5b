import hmac
from datetime import UTC, datetime

import bcrypt
from flask import Blueprint, current_app, jsonify, request, session
from flask_login import current_user, login_user, logout_user

from .. import limiter
from ..models import User
from .forms import AdminLoginForm, LoginForm

auth_bp = Blueprint("auth", __name__)


def _invalid(form):
    return jsonify({"error": "Invalid input.", "fields": form.errors}), 400


# ── Reader login ───────────────────────────────────────────────────


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return _invalid(form)

    username = form.username.data.strip()
    user = User.query.filter_by(username=username).first()

    if user is None or not user.has_password:
        # Equalize timing with the password check below
        bcrypt.checkpw(b"dummy-password", bcrypt.gensalt())
        current_app.logger.warning("Failed login for %r from %s", username, request.remote_addr)
        return jsonify({"error": "Invalid username or password."}), 401

    if not user.check_password(form.password.data):
        current_app.logger.warning("Failed login for %r from %s", username, request.remote_addr)
        return jsonify({"error": "Invalid username or password."}), 401

    login_user(user, remember=form.remember_me.data)
    session["login_time"] = datetime.now(UTC).isoformat()
    current_app.logger.info("User %s signed in.", user.username)
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        current_app.logger.info("User %s signed out.", current_user.username)
    logout_user()
    session.pop("login_time", None)
    return jsonify({"status": "ok"})


# ── Admin login ────────────────────────────────────────────────────


@auth_bp.route("/admin/login", methods=["POST"])
@limiter.limit("5 per minute")
def admin_login():
    admin_password = current_app.config.get("ADMIN_PASSWORD") or ""
    if not admin_password:
        return jsonify({"error": "Admin login is disabled."}), 403

    form = AdminLoginForm()
    if not form.validate_on_submit():
        return _invalid(form)

    if not hmac.compare_digest(form.password.data.encode("utf-8"), admin_password.encode("utf-8")):
        current_app.logger.warning("Failed admin login from %s", request.remote_addr)
        return jsonify({"error": "Invalid password."}), 401

    session.permanent = True
    session["is_admin"] = True
    session["admin_login_time"] = datetime.now(UTC).isoformat()
    current_app.logger.info("Admin signed in from %s.", request.remote_addr)
    return jsonify({"status": "ok"})


@auth_bp.route("/admin/logout", methods=["POST"])
def admin_logout():
    session.pop("is_admin", None)
    session.pop("admin_login_time", None)
    return jsonify({"status": "ok"})
