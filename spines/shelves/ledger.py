"""Shelf ledger: one row per (user, book) holding shelf, progress, dates and rating.

Every mutation returns a :class:`ShelfTransition` describing the before and
after state so the activity log can derive its event without re-reading the
row. Timestamp rules:

============================  ========  ===================================  ===========  ========
target                        added_at  started_reading_at                   finished_at  rating
============================  ========  ===================================  ===========  ========
create -> want_to_read        now       null                                 null         dropped
create -> currently_reading   now       now                                  null         dropped
create -> read                now       now                                  now          stored
update -> want_to_read        kept      cleared                              cleared      cleared
update -> currently_reading   kept      now if finished, else kept or now    cleared      cleared
update -> read                kept      kept or now                          now          stored
============================  ========  ===================================  ===========  ========
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError

from ..models import Shelf, UserBook, db
from .errors import AlreadyOnShelfError, NotOnShelfError

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
REMOVED = "removed"

DATE_FORMATS = (
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def _utcnow():
    return datetime.now(UTC)


@dataclass(frozen=True)
class ShelfTransition:
    kind: str
    user_id: int
    book_id: int
    old_shelf: str | None = None
    new_shelf: str | None = None
    old_sub_status: str | None = None
    new_sub_status: str | None = None

    @property
    def shelf_changed(self):
        return self.old_shelf != self.new_shelf

    @property
    def sub_status_changed(self):
        return self.old_sub_status != self.new_sub_status


@dataclass
class ShelfBooks:
    want_to_read: list = field(default_factory=list)
    currently_reading: list = field(default_factory=list)
    read: list = field(default_factory=list)

    def for_shelf(self, shelf):
        return getattr(self, Shelf.parse(shelf).value)

    def to_dict(self):
        return {shelf.value: [entry.to_dict() for entry in self.for_shelf(shelf)] for shelf in Shelf}


def _clean_sub_status(value):
    value = (value or "").strip()
    return value or None


def _clean_rating(value):
    if value is None or value == "":
        return None
    try:
        rating = int(value)
    except (TypeError, ValueError):
        return None
    return rating if 1 <= rating <= 5 else None


def parse_datetime(value):
    """Parse a user-supplied timestamp; returns None when empty or unparseable.

    Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        value = (value or "").strip()
        if not value:
            return None
        parsed = None
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


# ── Lookups ─────────────────────────────────────────────────────────


def get_user_book(user_id, book_id):
    return UserBook.query.filter_by(user_id=user_id, book_id=book_id).first()


def _newest_first(column):
    return (column.is_(None), column.desc(), UserBook.id.desc())


def _shelf_order(shelf):
    if shelf is Shelf.READ:
        return _newest_first(UserBook.finished_reading_at)
    return _newest_first(UserBook.added_at)


def get_user_shelves(user_id):
    """All of a user's entries grouped by shelf.

    Read books are ordered by finish date, the other shelves by date added.
    """
    shelves = ShelfBooks()
    for shelf in Shelf:
        entries = UserBook.query.filter_by(user_id=user_id, shelf=shelf.value).order_by(*_shelf_order(shelf)).all()
        setattr(shelves, shelf.value, entries)
    return shelves


def get_shelf_page(user_id, shelf, offset=0, limit=20):
    """Return ``(entries, total)`` for one shelf, ordered as in get_user_shelves."""
    shelf = Shelf.parse(shelf)
    query = UserBook.query.filter_by(user_id=user_id, shelf=shelf.value)
    total = query.count()
    entries = query.order_by(*_shelf_order(shelf)).offset(max(0, offset)).limit(limit).all()
    return entries, total


def random_currently_reading(user_ids):
    """Map each user id to one randomly chosen currently-reading entry."""
    if not user_ids:
        return {}
    entries = (
        UserBook.query.filter(
            UserBook.shelf == Shelf.CURRENTLY_READING.value,
            UserBook.user_id.in_(list(user_ids)),
        )
        .order_by(UserBook.user_id, db.func.random())
        .all()
    )
    result = {}
    for entry in entries:
        result.setdefault(entry.user_id, entry)
    return result


# ── Mutations ───────────────────────────────────────────────────────


def add_to_shelf(user_id, book_id, shelf, sub_status=None, rating=None):
    """Place a book on a shelf for the first time.

    Raises AlreadyOnShelfError if the user already shelved this book.
    """
    shelf = Shelf.parse(shelf)
    if get_user_book(user_id, book_id) is not None:
        raise AlreadyOnShelfError("This book is already on one of your shelves.")

    now = _utcnow()
    entry = UserBook(
        user_id=user_id,
        book_id=book_id,
        shelf=shelf.value,
        sub_status=_clean_sub_status(sub_status),
        added_at=now,
    )
    if shelf in (Shelf.CURRENTLY_READING, Shelf.READ):
        entry.started_reading_at = now
    if shelf is Shelf.READ:
        entry.finished_reading_at = now
        entry.rating = _clean_rating(rating)

    try:
        with db.session.begin_nested():
            db.session.add(entry)
        db.session.commit()
    except IntegrityError:
        # A concurrent add for the same pair won the unique constraint.
        if get_user_book(user_id, book_id) is not None:
            raise AlreadyOnShelfError("This book is already on one of your shelves.") from None
        raise

    logger.info("User %s added book %s to %s", user_id, book_id, shelf.value)
    return ShelfTransition(
        kind=CREATED,
        user_id=user_id,
        book_id=book_id,
        new_shelf=entry.shelf,
        new_sub_status=entry.sub_status,
    )


def update_shelf(user_id, book_id, shelf, sub_status=None, rating=None):
    """Move an existing entry and/or change its progress tag or rating.

    Raises NotOnShelfError if the user has not shelved this book.
    """
    shelf = Shelf.parse(shelf)
    entry = get_user_book(user_id, book_id)
    if entry is None:
        raise NotOnShelfError("This book is not on any of your shelves.")

    old_shelf = entry.shelf
    old_sub_status = entry.sub_status
    now = _utcnow()

    entry.shelf = shelf.value
    entry.sub_status = _clean_sub_status(sub_status)

    if shelf is Shelf.WANT_TO_READ:
        # Moving back resets all progress markers.
        entry.rating = None
        entry.started_reading_at = None
        entry.finished_reading_at = None
    elif shelf is Shelf.CURRENTLY_READING:
        entry.rating = None
        if entry.finished_reading_at is not None or entry.started_reading_at is None:
            # A finished book going back to currently reading is a re-read.
            entry.started_reading_at = now
        entry.finished_reading_at = None
    else:
        entry.rating = _clean_rating(rating)
        if entry.started_reading_at is None:
            entry.started_reading_at = now
        entry.finished_reading_at = now

    db.session.commit()

    return ShelfTransition(
        kind=UPDATED,
        user_id=user_id,
        book_id=book_id,
        old_shelf=old_shelf,
        new_shelf=entry.shelf,
        old_sub_status=old_sub_status,
        new_sub_status=entry.sub_status,
    )


def remove_from_shelf(user_id, book_id):
    """Delete the entry. Removing a book that is not shelved is a no-op returning None."""
    entry = get_user_book(user_id, book_id)
    if entry is None:
        return None

    transition = ShelfTransition(
        kind=REMOVED,
        user_id=user_id,
        book_id=book_id,
        old_shelf=entry.shelf,
        old_sub_status=entry.sub_status,
    )
    db.session.delete(entry)
    db.session.commit()

    logger.info("User %s removed book %s from %s", user_id, book_id, transition.old_shelf)
    return transition


def set_dates(user_id, book_id, added_at=None, started_reading_at=None, finished_reading_at=None):
    """Overwrite all three dates directly, bypassing the transition rules."""
    entry = get_user_book(user_id, book_id)
    if entry is None:
        raise NotOnShelfError("This book is not on any of your shelves.")

    entry.added_at = parse_datetime(added_at)
    entry.started_reading_at = parse_datetime(started_reading_at)
    entry.finished_reading_at = parse_datetime(finished_reading_at)
    db.session.commit()
    return entry
