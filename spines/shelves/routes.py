from flask import Blueprint
from flask_login import current_user, login_required

from .. import limiter
from . import views

shelves_bp = Blueprint("shelves", __name__)


@shelves_bp.before_request
@login_required
def before_request():
    pass


@shelves_bp.route("")
def my_books():
    return views.shelves(current_user)


@shelves_bp.route("/search")
@limiter.limit("30 per minute")
def search():
    return views.search()


@shelves_bp.route("/shelf/<shelf>")
def shelf_page(shelf):
    return views.shelf_page(current_user, shelf)


@shelves_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
def add_book():
    return views.add(current_user.id)


@shelves_bp.route("/<int:book_id>", methods=["POST"])
def update_book(book_id):
    return views.update(current_user.id, book_id)


@shelves_bp.route("/<int:book_id>/dates", methods=["POST"])
def set_dates(book_id):
    return views.set_dates(current_user.id, book_id)


@shelves_bp.route("/<int:book_id>/delete", methods=["POST"])
def remove_book(book_id):
    return views.remove(current_user.id, book_id)
