"""Feed queries and the human-readable rendering of events."""

from datetime import UTC, datetime

from ..models import Event, EventType, db, value_display


def _newest_first(query):
    return query.order_by(Event.created_at.desc(), Event.id.desc())


def recent(limit):
    return _newest_first(Event.query).limit(limit).all()


def for_user(user_id, limit):
    return _newest_first(Event.query.filter_by(user_id=user_id)).limit(limit).all()


def _latest_ids_subquery(user_ids=None):
    query = db.session.query(db.func.max(Event.id).label("event_id")).group_by(Event.user_id)
    if user_ids is not None:
        query = query.filter(Event.user_id.in_(list(user_ids)))
    return query.subquery()


def latest_per_user(limit):
    """Each user's most recent event, newest first."""
    latest = _latest_ids_subquery()
    return _newest_first(Event.query.join(latest, Event.id == latest.c.event_id)).limit(limit).all()


def latest_per_user_batch(user_ids):
    """Map user id to that user's most recent event; users with none are absent."""
    if not user_ids:
        return {}
    latest = _latest_ids_subquery(user_ids)
    events = Event.query.join(latest, Event.id == latest.c.event_id).all()
    return {event.user_id: event for event in events}


def latest_n_per_user(per_user, limit):
    """Up to ``per_user`` recent events per user, merged newest first."""
    ranked = db.session.query(
        Event.id.label("event_id"),
        db.func.row_number()
        .over(partition_by=Event.user_id, order_by=(Event.created_at.desc(), Event.id.desc()))
        .label("position"),
    ).subquery()
    query = Event.query.join(ranked, Event.id == ranked.c.event_id).filter(ranked.c.position <= per_user)
    return _newest_first(query).limit(limit).all()


# ── Presentation ────────────────────────────────────────────────────


def describe_event(event):
    title = event.book.title if event.book else ""

    if event.event_type == EventType.BOOK_ADDED:
        return f'added "{title}" to {value_display(event.shelf)}'
    if event.event_type == EventType.BOOK_MOVED:
        return f'moved "{title}" to {value_display(event.new_value)}'
    if event.event_type == EventType.READING_PROGRESS:
        if event.new_value:
            return f'is {value_display(event.new_value)} through "{title}"'
        return f'updated progress on "{title}"'
    if event.event_type == EventType.BOOK_REMOVED:
        return f'removed "{title}" from {value_display(event.shelf)}'
    return "performed an action"


def _aware(dt):
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _plural(count, unit):
    return f"1 {unit} ago" if count == 1 else f"{count} {unit}s ago"


def time_ago(dt, now=None):
    if dt is None:
        return ""
    now = _aware(now or datetime.now(UTC))
    dt = _aware(dt)
    seconds = int((now - dt).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return _plural(seconds // 60, "minute")
    if seconds < 86400:
        return _plural(seconds // 3600, "hour")
    if seconds < 7 * 86400:
        return _plural(seconds // 86400, "day")
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def serialize_event(event, include_user=True, now=None):
    data = {
        "id": event.id,
        "event_type": event.event_type,
        "shelf": value_display(event.shelf),
        "old_value": value_display(event.old_value),
        "new_value": value_display(event.new_value),
        "description": describe_event(event),
        "time_ago": time_ago(event.created_at, now=now),
        "created_at": _aware(event.created_at).isoformat() if event.created_at else None,
    }
    if include_user and event.user is not None:
        data["user"] = event.user.to_dict()
    if event.book is not None:
        data["book"] = {
            "id": event.book.id,
            "title": event.book.title,
            "authors": event.book.authors,
            "thumbnail_url": event.book.thumbnail_url,
        }
    return data
