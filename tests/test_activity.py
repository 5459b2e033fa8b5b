"""Tests for event derivation, recording, feed queries and rendering."""

from datetime import UTC, datetime, timedelta

import pytest

from spines import activity
from spines.activity import feed
from spines.models import Event, EventType, db
from spines.shelves import ledger, service
from spines.shelves.ledger import CREATED, REMOVED, UPDATED, ShelfTransition
from tests.conftest import _make_book, _make_user


def _event(user, book=None, event_type=EventType.BOOK_ADDED, created_at=None, **fields):
    entry = Event(
        user_id=user.id,
        event_type=event_type,
        book_id=book.id if book else None,
        created_at=created_at or datetime.now(UTC),
        **fields,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


# ── Derivation ──────────────────────────────────────────────────────


def test_created_transition_yields_book_added():
    spec = activity.event_for_transition(ShelfTransition(CREATED, 1, 2, new_shelf="read"))

    assert spec == activity.EventSpec(EventType.BOOK_ADDED, book_id=2, shelf="read", new_value="read")


def test_shelf_move_yields_book_moved():
    spec = activity.event_for_transition(
        ShelfTransition(UPDATED, 1, 2, old_shelf="want_to_read", new_shelf="currently_reading", new_sub_status="25_percent")
    )

    assert spec.event_type == EventType.BOOK_MOVED
    assert spec.shelf == "currently_reading"
    assert spec.old_value == "want_to_read"
    assert spec.new_value == "currently_reading"


def test_progress_change_on_currently_reading_yields_reading_progress():
    spec = activity.event_for_transition(
        ShelfTransition(
            UPDATED,
            1,
            2,
            old_shelf="currently_reading",
            new_shelf="currently_reading",
            old_sub_status="25_percent",
            new_sub_status="50_percent",
        )
    )

    assert spec.event_type == EventType.READING_PROGRESS
    assert spec.shelf == "currently_reading"
    assert spec.old_value == "25_percent"
    assert spec.new_value == "50_percent"


def test_progress_cleared_still_yields_reading_progress():
    spec = activity.event_for_transition(
        ShelfTransition(
            UPDATED, 1, 2, old_shelf="currently_reading", new_shelf="currently_reading", old_sub_status="50_percent"
        )
    )

    assert spec.event_type == EventType.READING_PROGRESS
    assert spec.new_value is None


@pytest.mark.parametrize(
    "transition",
    [
        ShelfTransition(UPDATED, 1, 2, old_shelf="read", new_shelf="read"),
        ShelfTransition(
            UPDATED, 1, 2, old_shelf="want_to_read", new_shelf="want_to_read", old_sub_status="need_to_buy"
        ),
        ShelfTransition(
            UPDATED,
            1,
            2,
            old_shelf="currently_reading",
            new_shelf="currently_reading",
            old_sub_status="50_percent",
            new_sub_status="50_percent",
        ),
        None,
    ],
)
def test_transitions_without_events(transition):
    assert activity.event_for_transition(transition) is None


def test_removed_transition_yields_book_removed():
    spec = activity.event_for_transition(ShelfTransition(REMOVED, 1, 2, old_shelf="read"))

    assert spec == activity.EventSpec(EventType.BOOK_REMOVED, book_id=2, shelf="read")


# ── Recording ───────────────────────────────────────────────────────


def test_record_event_persists_row():
    user = _make_user()
    book = _make_book()

    entry = activity.record_event(user.id, EventType.BOOK_ADDED, book_id=book.id, shelf="read", new_value="read")

    assert entry.id is not None
    stored = db.session.get(Event, entry.id)
    assert stored.user_id == user.id
    assert stored.created_at is not None


def test_record_event_failure_is_swallowed(caplog):
    user = _make_user()

    # Unknown book id violates the foreign key.
    entry = activity.record_event(user.id, EventType.BOOK_ADDED, book_id=9999, shelf="read")

    assert entry is None
    assert Event.query.count() == 0
    assert "Failed to record book_added event" in caplog.text


def test_service_records_one_event_per_mutation():
    user = _make_user()

    book, _ = service.add_book(user.id, {"google_books_id": "v1", "title": "T"}, "want_to_read")
    service.update_book(user.id, book.id, "currently_reading")
    service.update_book(user.id, book.id, "currently_reading", sub_status="50_percent")
    service.update_book(user.id, book.id, "currently_reading", sub_status="50_percent")
    service.remove_book(user.id, book.id)
    service.remove_book(user.id, book.id)

    types = [e.event_type for e in Event.query.order_by(Event.id).all()]
    assert types == [
        EventType.BOOK_ADDED,
        EventType.BOOK_MOVED,
        EventType.READING_PROGRESS,
        EventType.BOOK_REMOVED,
    ]


def test_failed_ledger_mutation_records_nothing():
    user = _make_user()
    book = _make_book()
    ledger.add_to_shelf(user.id, book.id, "read")

    with pytest.raises(ValueError):
        service.add_book(user.id, {"google_books_id": book.google_books_id, "title": "T"}, "read")

    assert Event.query.count() == 0


def test_event_failure_does_not_undo_shelf_change(monkeypatch):
    user = _make_user()

    def _broken(*args, **kwargs):
        return None

    monkeypatch.setattr(activity, "record_event", _broken)

    book, transition = service.add_book(user.id, {"google_books_id": "v1", "title": "T"}, "read", rating=5)

    assert transition.kind == CREATED
    assert ledger.get_user_book(user.id, book.id).rating == 5
    assert Event.query.count() == 0


def test_deleting_user_cascades_to_events_and_entries():
    user = _make_user()
    service.add_book(user.id, {"google_books_id": "v1", "title": "T"}, "read")

    db.session.delete(user)
    db.session.commit()

    assert Event.query.count() == 0
    assert ledger.UserBook.query.count() == 0


# ── Feed queries ────────────────────────────────────────────────────


def test_recent_and_for_user_order_newest_first():
    alice = _make_user(username="alice")
    bob = _make_user(username="bob")
    base = datetime(2026, 1, 1, tzinfo=UTC)
    first = _event(alice, created_at=base)
    second = _event(bob, created_at=base + timedelta(minutes=1))
    third = _event(alice, created_at=base + timedelta(minutes=2))

    assert [e.id for e in feed.recent(10)] == [third.id, second.id, first.id]
    assert [e.id for e in feed.recent(2)] == [third.id, second.id]
    assert [e.id for e in feed.for_user(alice.id, 10)] == [third.id, first.id]


def test_same_timestamp_ties_break_on_id():
    alice = _make_user(username="alice")
    stamp = datetime(2026, 1, 1, tzinfo=UTC)
    first = _event(alice, created_at=stamp)
    second = _event(alice, created_at=stamp)

    assert [e.id for e in feed.recent(10)] == [second.id, first.id]


def test_latest_per_user_returns_one_event_each():
    alice = _make_user(username="alice")
    bob = _make_user(username="bob")
    _make_user(username="quiet")
    base = datetime(2026, 1, 1, tzinfo=UTC)
    _event(alice, created_at=base)
    bob_latest = _event(bob, created_at=base + timedelta(minutes=1))
    alice_latest = _event(alice, created_at=base + timedelta(minutes=2))

    assert [e.id for e in feed.latest_per_user(10)] == [alice_latest.id, bob_latest.id]
    assert [e.id for e in feed.latest_per_user(1)] == [alice_latest.id]


def test_latest_per_user_batch_maps_users_with_events():
    alice = _make_user(username="alice")
    bob = _make_user(username="bob")
    quiet = _make_user(username="quiet")
    _event(alice)
    latest = _event(alice)

    batch = feed.latest_per_user_batch([alice.id, bob.id, quiet.id])

    assert set(batch) == {alice.id}
    assert batch[alice.id].id == latest.id
    assert feed.latest_per_user_batch([]) == {}


def test_latest_n_per_user_caps_each_user():
    alice = _make_user(username="alice")
    bob = _make_user(username="bob")
    base = datetime(2026, 1, 1, tzinfo=UTC)
    alice_events = [_event(alice, created_at=base + timedelta(minutes=i)) for i in range(4)]
    bob_event = _event(bob, created_at=base + timedelta(minutes=10))

    events = feed.latest_n_per_user(per_user=2, limit=10)

    assert [e.id for e in events] == [bob_event.id, alice_events[3].id, alice_events[2].id]


# ── Presentation ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("event_type", "fields", "expected"),
    [
        (EventType.BOOK_ADDED, {"shelf": "want_to_read"}, 'added "Dune" to Want to Read'),
        (EventType.BOOK_MOVED, {"old_value": "want_to_read", "new_value": "read"}, 'moved "Dune" to Read'),
        (EventType.READING_PROGRESS, {"new_value": "50_percent"}, 'is 50% through "Dune"'),
        (EventType.READING_PROGRESS, {}, 'updated progress on "Dune"'),
        (EventType.BOOK_REMOVED, {"shelf": "read"}, 'removed "Dune" from Read'),
        ("something_else", {}, "performed an action"),
    ],
)
def test_describe_event(event_type, fields, expected):
    user = _make_user()
    book = _make_book(title="Dune")

    assert feed.describe_event(_event(user, book, event_type=event_type, **fields)) == expected


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=45), "45 minutes ago"),
        (timedelta(hours=1), "1 hour ago"),
        (timedelta(hours=23), "23 hours ago"),
        (timedelta(days=1), "1 day ago"),
        (timedelta(days=6), "6 days ago"),
    ],
)
def test_time_ago_relative(delta, expected):
    now = datetime(2026, 5, 20, 12, 0, tzinfo=UTC)
    assert feed.time_ago(now - delta, now=now) == expected


def test_time_ago_falls_back_to_date_after_a_week():
    now = datetime(2026, 5, 20, 12, 0, tzinfo=UTC)
    assert feed.time_ago(datetime(2026, 1, 3, 8, 0), now=now) == "Jan 3, 2026"


def test_serialize_event_renders_display_values():
    user = _make_user(username="alice", display_name="Alice")
    book = _make_book(title="Dune")
    event = _event(
        user,
        book,
        event_type=EventType.BOOK_MOVED,
        shelf="read",
        old_value="currently_reading",
        new_value="read",
    )

    data = feed.serialize_event(event)

    assert data["shelf"] == "Read"
    assert data["old_value"] == "Currently Reading"
    assert data["new_value"] == "Read"
    assert data["description"] == 'moved "Dune" to Read'
    assert data["user"]["username"] == "alice"
    assert data["book"]["title"] == "Dune"
    assert data["created_at"].endswith("+00:00")
    assert "user" not in feed.serialize_event(event, include_user=False)


def test_want_to_read_then_read_scenario(monkeypatch):
    added = datetime(2026, 4, 1, 8, 0, tzinfo=UTC)
    finished = datetime(2026, 4, 20, 21, 0, tzinfo=UTC)
    user = _make_user()
    monkeypatch.setattr(ledger, "_utcnow", lambda: added)
    book, _ = service.add_book(
        user.id, {"google_books_id": "v1", "title": "Foo", "isbn_13": "9780000000001"}, "want_to_read"
    )

    monkeypatch.setattr(ledger, "_utcnow", lambda: finished)
    service.update_book(user.id, book.id, "read", rating=4)

    entry = ledger.get_user_book(user.id, book.id)
    assert entry.shelf == "read"
    assert entry.rating == 4
    assert entry.added_at == added.replace(tzinfo=None)
    assert entry.started_reading_at == finished.replace(tzinfo=None)
    assert entry.finished_reading_at == finished.replace(tzinfo=None)
    moved = Event.query.filter_by(event_type=EventType.BOOK_MOVED).one()
    assert moved.old_value == "want_to_read"
    assert moved.new_value == "read"
