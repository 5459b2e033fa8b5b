from ..shelves import views
from .common import admin_bp, admin_required, get_user_or_404

# ── Shelf curation on behalf of a reader ───────────────────────────


@admin_bp.route("/users/<int:user_id>/books")
@admin_required
def user_books(user_id):
    return views.shelves(get_user_or_404(user_id))


@admin_bp.route("/users/<int:user_id>/books/search")
@admin_required
def search_books(user_id):
    get_user_or_404(user_id)
    return views.search()


@admin_bp.route("/users/<int:user_id>/books/shelf/<shelf>")
@admin_required
def user_shelf_page(user_id, shelf):
    return views.shelf_page(get_user_or_404(user_id), shelf)


@admin_bp.route("/users/<int:user_id>/books", methods=["POST"])
@admin_required
def add_user_book(user_id):
    return views.add(get_user_or_404(user_id).id)


@admin_bp.route("/users/<int:user_id>/books/<int:book_id>", methods=["POST"])
@admin_required
def update_user_book(user_id, book_id):
    return views.update(get_user_or_404(user_id).id, book_id)


@admin_bp.route("/users/<int:user_id>/books/<int:book_id>/dates", methods=["POST"])
@admin_required
def set_user_book_dates(user_id, book_id):
    return views.set_dates(get_user_or_404(user_id).id, book_id)


@admin_bp.route("/users/<int:user_id>/books/<int:book_id>/delete", methods=["POST"])
@admin_required
def remove_user_book(user_id, book_id):
    return views.remove(get_user_or_404(user_id).id, book_id)
