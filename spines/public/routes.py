from flask import Blueprint, abort, current_app, jsonify, request

from ..activity.feed import latest_per_user_batch, serialize_event
from ..models import Shelf, User
from ..shelves import ledger

public_bp = Blueprint("public", __name__)

PUBLIC_SHELF_INITIAL_LIMIT = 8

# Currently-reading books are always shown in full on the user page.
PAGED_PUBLIC_SHELVES = (Shelf.WANT_TO_READ, Shelf.READ)


def _get_user_by_username_or_404(username):
    user = User.query.filter_by(username=username).first()
    if user is None:
        abort(404)
    return user


def _public_profile(user):
    data = user.to_dict()
    data["description"] = user.description
    return data


@public_bp.route("/")
def dashboard():
    users = User.query.order_by(User.display_name.asc(), User.id.asc()).all()
    user_ids = [user.id for user in users]
    latest = latest_per_user_batch(user_ids)
    reading = ledger.random_currently_reading(user_ids)

    readers = []
    for user in users:
        entry = _public_profile(user)
        event = latest.get(user.id)
        entry["latest_event"] = serialize_event(event, include_user=False) if event else None
        current = reading.get(user.id)
        entry["currently_reading"] = current.book.to_dict() if current else None
        readers.append(entry)

    return jsonify({"readers": readers})


@public_bp.route("/u/<username>")
def user_page(username):
    user = _get_user_by_username_or_404(username)
    shelves = ledger.get_user_shelves(user.id)

    return jsonify(
        {
            "user": _public_profile(user),
            "currently_reading": [entry.to_dict() for entry in shelves.currently_reading],
            "want_to_read": [entry.to_dict() for entry in shelves.want_to_read[:PUBLIC_SHELF_INITIAL_LIMIT]],
            "want_to_read_total": len(shelves.want_to_read),
            "read": [entry.to_dict() for entry in shelves.read[:PUBLIC_SHELF_INITIAL_LIMIT]],
            "read_total": len(shelves.read),
        }
    )


@public_bp.route("/u/<username>/shelf/<shelf>")
def user_shelf(username, shelf):
    if shelf not in {s.value for s in PAGED_PUBLIC_SHELVES}:
        return jsonify({"error": "Invalid shelf."}), 400

    user = _get_user_by_username_or_404(username)
    offset = max(0, request.args.get("offset", 0, type=int))
    entries, total = ledger.get_shelf_page(user.id, shelf, offset=offset, limit=current_app.config["SHELF_PAGE_SIZE"])

    return jsonify(
        {
            "shelf": shelf,
            "books": [entry.to_dict() for entry in entries],
            "next_offset": offset + len(entries),
            "remaining": max(0, total - offset - len(entries)),
            "total": total,
        }
    )
