import enum
import sqlite3
from datetime import UTC, datetime

import bcrypt
from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

from .shelves.errors import InvalidShelfError

db = SQLAlchemy()

DEFAULT_AVATAR_URL = "/static/uploads/avatars/default.svg"


def _utcnow():
    return datetime.now(UTC)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # ON DELETE CASCADE on user_books/events only fires with this pragma set.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ── Shelves & sub-statuses ──────────────────────────────────────────


class Shelf(str, enum.Enum):
    WANT_TO_READ = "want_to_read"
    CURRENTLY_READING = "currently_reading"
    READ = "read"

    @property
    def display_name(self):
        return _SHELF_LABELS[self]

    @classmethod
    def parse(cls, value):
        """Return the Shelf for *value*, raising InvalidShelfError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip())
        except ValueError:
            raise InvalidShelfError(f"Invalid shelf: {value!r}") from None


_SHELF_LABELS = {
    Shelf.WANT_TO_READ: "Want to Read",
    Shelf.CURRENTLY_READING: "Currently Reading",
    Shelf.READ: "Read",
}

SHELF_CHOICES = [(s.value, s.display_name) for s in Shelf]


class SubStatus(str, enum.Enum):
    """Known progress/ownership tags. Anything else is stored as a custom tag."""

    JUST_STARTED = "just_started"
    PERCENT_25 = "25_percent"
    PERCENT_50 = "50_percent"
    PERCENT_75 = "75_percent"
    ALMOST_FINISHED = "almost_finished"
    NEED_TO_BUY = "need_to_buy"
    ALREADY_OWN = "already_own"

    @classmethod
    def lookup(cls, value):
        """Return the known SubStatus for *value*, or None for custom/empty tags."""
        try:
            return cls(value)
        except ValueError:
            return None


_SUB_STATUS_LABELS = {
    SubStatus.JUST_STARTED: "Just started",
    SubStatus.PERCENT_25: "25%",
    SubStatus.PERCENT_50: "50%",
    SubStatus.PERCENT_75: "75%",
    SubStatus.ALMOST_FINISHED: "Almost finished",
    SubStatus.NEED_TO_BUY: "Do not own",
    SubStatus.ALREADY_OWN: "Already own",
}

_SUB_STATUS_PROGRESS = {
    SubStatus.JUST_STARTED: 5,
    SubStatus.PERCENT_25: 25,
    SubStatus.PERCENT_50: 50,
    SubStatus.PERCENT_75: 75,
    SubStatus.ALMOST_FINISHED: 95,
}

SUB_STATUS_CHOICES = [("", "None")] + [(s.value, label) for s, label in _SUB_STATUS_LABELS.items()]


def sub_status_display(value):
    if not value:
        return ""
    known = SubStatus.lookup(value)
    return _SUB_STATUS_LABELS[known] if known else value


def reading_progress(value):
    """Progress percentage for a sub-status, or None when it is not a progress tag."""
    known = SubStatus.lookup(value) if value else None
    return _SUB_STATUS_PROGRESS.get(known)


def value_display(value):
    """Human-readable form of a stored shelf or sub-status value."""
    if not value:
        return ""
    try:
        return Shelf(value).display_name
    except ValueError:
        return sub_status_display(value)


def _isoformat(value):
    return value.isoformat() if value else None


# ── User ────────────────────────────────────────────────────────────


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    password_hash = db.Column(db.String(255), nullable=True)
    profile_picture = db.Column(db.String(255), nullable=True)
    theme = db.Column(db.String(20), nullable=False, default="light")  # light, dark
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    __table_args__ = (db.CheckConstraint("theme IN ('light', 'dark')", name="ck_users_theme"),)

    user_books = db.relationship(
        "UserBook", back_populates="user", lazy="dynamic", cascade="all", passive_deletes=True
    )
    events = db.relationship(
        "Event", back_populates="user", lazy="dynamic", cascade="all", passive_deletes=True
    )

    def set_password(self, password):
        self.password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def clear_password(self):
        self.password_hash = None

    @property
    def has_password(self):
        return bool(self.password_hash)

    def check_password(self, password):
        if not self.has_password:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), self.password_hash.encode("utf-8"))

    @property
    def profile_picture_url(self):
        if self.profile_picture:
            return f"/static/uploads/avatars/{self.profile_picture}"
        return DEFAULT_AVATAR_URL

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "profile_picture": self.profile_picture_url,
        }

    def __repr__(self):
        return f"<User {self.username}>"


# ── Book ────────────────────────────────────────────────────────────


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    google_books_id = db.Column(db.String(64), unique=True, nullable=False)
    title = db.Column(db.String(500), nullable=False)
    authors = db.Column(db.String(500), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)
    thumbnail_url = db.Column(db.String(1000), nullable=False, default="")
    isbn_13 = db.Column(db.String(13), nullable=True, unique=True, index=True)
    isbn_10 = db.Column(db.String(10), nullable=True, unique=True, index=True)
    page_count = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "google_books_id": self.google_books_id,
            "title": self.title,
            "authors": self.authors,
            "description": self.description,
            "thumbnail_url": self.thumbnail_url,
            "isbn_13": self.isbn_13,
            "isbn_10": self.isbn_10,
            "page_count": self.page_count,
        }

    def __repr__(self):
        return f"<Book {self.title[:40]}>"


# ── UserBook (shelf ledger entry) ───────────────────────────────────


class UserBook(db.Model):
    __tablename__ = "user_books"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    shelf = db.Column(db.String(20), nullable=False)
    sub_status = db.Column(db.String(50), nullable=True)
    rating = db.Column(db.Integer, nullable=True)
    added_at = db.Column(db.DateTime, nullable=True)
    started_reading_at = db.Column(db.DateTime, nullable=True)
    finished_reading_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("user_id", "book_id", name="uq_user_books_user_book"),
        db.CheckConstraint(
            "shelf IN ('want_to_read', 'currently_reading', 'read')",
            name="ck_user_books_shelf",
        ),
        db.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_user_books_rating_range",
        ),
    )

    user = db.relationship("User", back_populates="user_books")
    book = db.relationship("Book", lazy="joined")

    @property
    def shelf_display(self):
        return value_display(self.shelf)

    @property
    def sub_status_display(self):
        return sub_status_display(self.sub_status)

    @property
    def reading_progress(self):
        return reading_progress(self.sub_status)

    @property
    def rating_stars(self):
        return "*" * (self.rating or 0)

    def to_dict(self):
        return {
            "book": self.book.to_dict() if self.book else None,
            "shelf": self.shelf,
            "shelf_display": self.shelf_display,
            "sub_status": self.sub_status,
            "sub_status_display": self.sub_status_display,
            "reading_progress": self.reading_progress,
            "rating": self.rating,
            "added_at": _isoformat(self.added_at),
            "started_reading_at": _isoformat(self.started_reading_at),
            "finished_reading_at": _isoformat(self.finished_reading_at),
        }

    def __repr__(self):
        return f"<UserBook user={self.user_id} book={self.book_id} {self.shelf}>"


# ── Event (activity feed) ───────────────────────────────────────────


class EventType:
    BOOK_ADDED = "book_added"
    BOOK_MOVED = "book_moved"
    READING_PROGRESS = "reading_progress"
    BOOK_REMOVED = "book_removed"


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = db.Column(db.String(32), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=True)
    shelf = db.Column(db.String(20), nullable=True)
    old_value = db.Column(db.String(50), nullable=True)
    new_value = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)

    user = db.relationship("User", back_populates="events", lazy="joined")
    book = db.relationship("Book", lazy="joined")

    def __repr__(self):
        return f"<Event {self.event_type} user={self.user_id} at {self.created_at}>"
