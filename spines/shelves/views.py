"""Request handling shared by /my-books and the admin curation routes.

Every function acts on behalf of ``user_id`` and returns a JSON response.
"""

from flask import abort, current_app, jsonify, request

from ..catalog.client import CatalogError, canonical_lookup_client, get_catalog_client
from ..models import Shelf
from . import ledger, service
from .errors import AlreadyOnShelfError, InvalidShelfError, NotOnShelfError
from .forms import AddBookForm, BookDatesForm, UpdateBookForm


def _invalid(form):
    return jsonify({"error": "Invalid input.", "fields": form.errors}), 400


def _parse_shelf_or_404(shelf):
    try:
        return Shelf.parse(shelf)
    except InvalidShelfError:
        abort(404)


def shelves(user):
    return jsonify({"user": user.to_dict(), "shelves": ledger.get_user_shelves(user.id).to_dict()})


def search():
    query = request.args.get("q", "").strip()
    if not query:
        return jsonify({"query": "", "results": []})

    try:
        results = get_catalog_client().search(query)
    except CatalogError as exc:
        current_app.logger.warning("Catalog search failed for %r: %s", query, exc)
        return jsonify({"error": "Failed to search books. Please try again."}), 502

    return jsonify({"query": query, "results": [result.to_dict() for result in results]})


def shelf_page(user, shelf):
    shelf = _parse_shelf_or_404(shelf)
    offset = max(0, request.args.get("offset", 0, type=int))
    entries, total = ledger.get_shelf_page(user.id, shelf, offset=offset, limit=current_app.config["SHELF_PAGE_SIZE"])
    return jsonify(
        {
            "shelf": shelf.value,
            "shelf_display": shelf.display_name,
            "books": [entry.to_dict() for entry in entries],
            "offset": offset,
            "total": total,
            "has_more": offset + len(entries) < total,
        }
    )


def add(user_id):
    form = AddBookForm()
    if not form.validate_on_submit():
        return _invalid(form)

    try:
        book, _ = service.add_book(
            user_id,
            form.book_data(),
            form.shelf.data,
            sub_status=form.sub_status.data,
            rating=form.rating.data,
            catalog=canonical_lookup_client(),
        )
    except AlreadyOnShelfError as exc:
        return jsonify({"error": str(exc)}), 409

    entry = ledger.get_user_book(user_id, book.id)
    return jsonify({"entry": entry.to_dict()}), 201


def update(user_id, book_id):
    form = UpdateBookForm()
    if not form.validate_on_submit():
        return _invalid(form)

    try:
        service.update_book(
            user_id,
            book_id,
            form.shelf.data,
            sub_status=form.sub_status.data,
            rating=form.rating.data,
        )
    except NotOnShelfError as exc:
        return jsonify({"error": str(exc)}), 404

    return jsonify({"entry": ledger.get_user_book(user_id, book_id).to_dict()})


def set_dates(user_id, book_id):
    form = BookDatesForm()
    if not form.validate_on_submit():
        return _invalid(form)

    try:
        entry = ledger.set_dates(
            user_id,
            book_id,
            added_at=form.added_at.data,
            started_reading_at=form.started_reading_at.data,
            finished_reading_at=form.finished_reading_at.data,
        )
    except NotOnShelfError as exc:
        return jsonify({"error": str(exc)}), 404

    return jsonify({"entry": entry.to_dict()})


def remove(user_id, book_id):
    transition = service.remove_book(user_id, book_id)
    return jsonify({"removed": transition is not None})
