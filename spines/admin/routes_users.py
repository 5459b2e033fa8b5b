from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError

from ..models import User, db
from .common import admin_bp, admin_required, get_user_or_404
from .forms import SetPasswordForm, UserForm


def _invalid(form):
    return jsonify({"error": "Invalid input.", "fields": form.errors}), 400


def _user_detail(user):
    data = user.to_dict()
    data.update(
        description=user.description,
        has_password=user.has_password,
        created_at=user.created_at.isoformat() if user.created_at else None,
    )
    return data


# ── Users ──────────────────────────────────────────────────────────


@admin_bp.route("/users")
@admin_required
def users():
    all_users = User.query.order_by(User.display_name.asc(), User.id.asc()).all()
    return jsonify({"users": [_user_detail(user) for user in all_users]})


@admin_bp.route("/users", methods=["POST"])
@admin_required
def create_user():
    form = UserForm()
    if not form.validate_on_submit():
        return _invalid(form)

    user = User(
        username=form.username.data.strip(),
        display_name=form.display_name.data.strip(),
        description=(form.description.data or "").strip(),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "That username is already taken."}), 409

    current_app.logger.info("Admin created user %s (id=%d).", user.username, user.id)
    return jsonify({"user": _user_detail(user)}), 201


@admin_bp.route("/users/<int:user_id>")
@admin_required
def user_detail(user_id):
    return jsonify({"user": _user_detail(get_user_or_404(user_id))})


@admin_bp.route("/users/<int:user_id>", methods=["POST"])
@admin_required
def update_user(user_id):
    user = get_user_or_404(user_id)
    form = UserForm()
    if not form.validate_on_submit():
        return _invalid(form)

    user.username = form.username.data.strip()
    user.display_name = form.display_name.data.strip()
    user.description = (form.description.data or "").strip()
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "That username is already taken."}), 409

    return jsonify({"user": _user_detail(user)})


@admin_bp.route("/users/<int:user_id>/password", methods=["POST"])
@admin_required
def set_password(user_id):
    user = get_user_or_404(user_id)
    form = SetPasswordForm()
    if not form.validate_on_submit():
        return _invalid(form)

    user.set_password(form.password.data)
    db.session.commit()
    current_app.logger.info("Admin set password for user %s.", user.username)
    return jsonify({"user": _user_detail(user)})


@admin_bp.route("/users/<int:user_id>/password/clear", methods=["POST"])
@admin_required
def clear_password(user_id):
    user = get_user_or_404(user_id)
    user.clear_password()
    db.session.commit()
    current_app.logger.info("Admin disabled login for user %s.", user.username)
    return jsonify({"user": _user_detail(user)})


@admin_bp.route("/users/<int:user_id>/delete", methods=["POST"])
@admin_required
def delete_user(user_id):
    user = get_user_or_404(user_id)
    username = user.username
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("Admin deleted user %s.", username)
    return jsonify({"deleted": True})
