from unittest.mock import patch

import pytest

from spines.models import Book, User
from spines.models import db as _db

ADMIN_PASSWORD = "admin-testing-password"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing (session-scoped)."""
    with patch("spines.upgrade"):
        from spines import create_app

        _app = create_app("testing")

    yield _app


@pytest.fixture(autouse=True)
def db(app):
    """Create all tables before each test, drop them after."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(autouse=True)
def _clear_catalog_cache(app):
    app.extensions["catalog"].cache.clear()
    yield


@pytest.fixture()
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


def _make_user(username="reader", password="TestPass1", display_name="Test Reader", description=""):
    """Create and persist a User. Pass password=None for a user who cannot log in."""
    user = User(username=username, display_name=display_name, description=description)
    if password:
        user.set_password(password)
    _db.session.add(user)
    _db.session.commit()
    return user


def _make_book(
    google_books_id="vol-1",
    title="Test Book",
    authors="Test Author",
    description=None,
    isbn_13=None,
    isbn_10=None,
    page_count=None,
):
    """Create and persist a Book. Callable multiple times per test."""
    book = Book(
        google_books_id=google_books_id,
        title=title,
        authors=authors,
        description=description,
        isbn_13=isbn_13,
        isbn_10=isbn_10,
        page_count=page_count,
    )
    _db.session.add(book)
    _db.session.commit()
    return book


def _login(client, username="reader", password="TestPass1"):
    """Log in via the real /login route and return the response."""
    return client.post("/login", data={"username": username, "password": password})


def _admin_login(client, password=ADMIN_PASSWORD):
    return client.post("/admin/login", data={"password": password})


@pytest.fixture()
def reader(db):
    """A default reader with a password."""
    return _make_user()


@pytest.fixture()
def reader_client(client, reader):
    """A test client logged in as the default reader."""
    _login(client, reader.username, "TestPass1")
    return client


@pytest.fixture()
def admin_client(client):
    """A test client holding an admin session."""
    _admin_login(client)
    return client
