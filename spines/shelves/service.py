"""Shelf operations shared by the self-service and admin handlers.

Each call commits the ledger change first and then records the derived
activity event on a best-effort basis.
"""

from .. import activity
from ..books.registry import get_or_create_book
from ..models import Shelf
from . import ledger

BOOK_FIELDS = (
    "google_books_id",
    "title",
    "authors",
    "description",
    "thumbnail_url",
    "isbn_13",
    "isbn_10",
    "page_count",
)


def add_book(user_id, data, shelf, sub_status=None, rating=None, catalog=None):
    """Register the book (if needed) and put it on the user's shelf.

    ``data`` carries the catalog fields named in BOOK_FIELDS. Returns
    ``(book, transition)``.
    """
    shelf = Shelf.parse(shelf)
    book = get_or_create_book(catalog=catalog, **{key: data.get(key) for key in BOOK_FIELDS})
    transition = ledger.add_to_shelf(user_id, book.id, shelf, sub_status=sub_status, rating=rating)
    activity.record_transition(transition)
    return book, transition


def update_book(user_id, book_id, shelf, sub_status=None, rating=None):
    transition = ledger.update_shelf(user_id, book_id, shelf, sub_status=sub_status, rating=rating)
    activity.record_transition(transition)
    return transition


def remove_book(user_id, book_id):
    transition = ledger.remove_from_shelf(user_id, book_id)
    activity.record_transition(transition)
    return transition
