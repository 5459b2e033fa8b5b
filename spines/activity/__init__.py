"""Append-only activity log derived from shelf transitions."""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy.exc import SQLAlchemyError

from ..models import Event, EventType, Shelf, db
from ..shelves.ledger import CREATED, REMOVED, UPDATED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSpec:
    event_type: str
    book_id: int | None = None
    shelf: str | None = None
    old_value: str | None = None
    new_value: str | None = None


def event_for_transition(transition):
    """Map a ShelfTransition to the event it produces, or None.

    Shelf moves win over progress changes; progress changes are only
    reported on the currently-reading shelf.
    """
    if transition is None:
        return None

    if transition.kind == CREATED:
        return EventSpec(
            EventType.BOOK_ADDED,
            book_id=transition.book_id,
            shelf=transition.new_shelf,
            new_value=transition.new_shelf,
        )

    if transition.kind == REMOVED:
        return EventSpec(EventType.BOOK_REMOVED, book_id=transition.book_id, shelf=transition.old_shelf)

    if transition.kind == UPDATED:
        if transition.shelf_changed:
            return EventSpec(
                EventType.BOOK_MOVED,
                book_id=transition.book_id,
                shelf=transition.new_shelf,
                old_value=transition.old_shelf,
                new_value=transition.new_shelf,
            )
        if transition.new_shelf == Shelf.CURRENTLY_READING.value and transition.sub_status_changed:
            return EventSpec(
                EventType.READING_PROGRESS,
                book_id=transition.book_id,
                shelf=transition.new_shelf,
                old_value=transition.old_sub_status,
                new_value=transition.new_sub_status,
            )

    return None


def record_event(user_id, event_type, book_id=None, shelf=None, old_value=None, new_value=None):
    """Append an event to the log.

    The shelf change that triggered the event is already committed, so a
    failure here is logged and swallowed; None is returned in that case.
    """
    entry = Event(
        user_id=user_id,
        event_type=event_type,
        book_id=book_id,
        shelf=shelf,
        old_value=old_value,
        new_value=new_value,
    )
    try:
        with db.session.begin_nested():
            db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to record %s event for user %s", event_type, user_id)
        db.session.rollback()
        return None
    return entry


def record_transition(transition):
    spec = event_for_transition(transition)
    if spec is None:
        return None
    return record_event(transition.user_id, **asdict(spec))
