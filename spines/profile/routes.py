from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from .. import limiter
from ..models import db
from .forms import ChangePasswordForm, ProfileForm, ThemeForm

profile_bp = Blueprint("profile", __name__)


@profile_bp.before_request
@login_required
def before_request():
    pass


def _invalid(form):
    return jsonify({"error": "Invalid input.", "fields": form.errors}), 400


def _profile(user):
    data = user.to_dict()
    data.update(description=user.description, theme=user.theme)
    return data


@profile_bp.route("")
def show():
    return jsonify({"user": _profile(current_user)})


@profile_bp.route("", methods=["POST"])
def update():
    form = ProfileForm()
    if not form.validate_on_submit():
        return _invalid(form)

    current_user.display_name = form.display_name.data.strip()
    current_user.description = (form.description.data or "").strip()
    db.session.commit()
    return jsonify({"user": _profile(current_user)})


@profile_bp.route("/password", methods=["POST"])
@limiter.limit("5 per minute")
def change_password():
    form = ChangePasswordForm()
    if not form.validate_on_submit():
        return _invalid(form)

    if not current_user.check_password(form.current_password.data):
        return jsonify({"error": "Current password is incorrect."}), 400

    current_user.set_password(form.new_password.data)
    db.session.commit()
    current_app.logger.info("User %s changed their password.", current_user.username)
    return jsonify({"status": "ok"})


@profile_bp.route("/theme", methods=["POST"])
def set_theme():
    form = ThemeForm()
    if not form.validate_on_submit():
        return _invalid(form)

    current_user.theme = form.theme.data
    db.session.commit()
    return jsonify({"theme": current_user.theme})
