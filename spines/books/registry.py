"""Canonical book records.

Catalog search results are per edition (paperback and hardcover have
different volume ids) while ISBNs usually identify what a reader thinks of
as the same book. ``get_or_create_book`` resolves incoming catalog data to a
single ``Book`` row:

1. an existing row with the same ISBN-13 or ISBN-10 wins as-is;
2. an existing row with the same volume id wins, after missing ISBN/page
   count fields are backfilled;
3. otherwise, when an ISBN is known and canonical lookups are enabled, the
   catalog's canonical edition replaces the incoming data and steps 1-2 are
   retried with it;
4. a new row is inserted.

Catalog failures never block cataloging: they fall through to step 4 with
the caller's data.
"""

import logging

from sqlalchemy.exc import IntegrityError

from ..catalog.client import CatalogError
from ..models import Book, db

logger = logging.getLogger(__name__)

DESCRIPTION_BACKFILL_BATCH = 50


def _clean(value):
    return (value or "").strip()


def _page_count(value):
    try:
        value = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return value if value > 0 else 0


def get_book(book_id):
    return db.session.get(Book, book_id)


def get_book_by_isbn(isbn_13="", isbn_10=""):
    """Return the book matching ISBN-13, falling back to ISBN-10, or None."""
    if isbn_13:
        book = Book.query.filter_by(isbn_13=isbn_13).first()
        if book:
            return book
    if isbn_10:
        book = Book.query.filter_by(isbn_10=isbn_10).first()
        if book:
            return book
    return None


def get_book_by_google_id(google_books_id):
    if not google_books_id:
        return None
    return Book.query.filter_by(google_books_id=google_books_id).first()


def _has_gaps(book, isbn_13, isbn_10, page_count):
    return bool(
        (isbn_13 and not book.isbn_13) or (isbn_10 and not book.isbn_10) or (page_count and not book.page_count)
    )


def backfill_book(book, isbn_13="", isbn_10="", page_count=0):
    """Fill null ISBN/page-count columns; present values are never overwritten."""
    Book.query.filter_by(id=book.id).update(
        {
            Book.isbn_13: db.func.coalesce(Book.isbn_13, isbn_13 or None),
            Book.isbn_10: db.func.coalesce(Book.isbn_10, isbn_10 or None),
            Book.page_count: db.func.coalesce(Book.page_count, page_count or None),
        },
        synchronize_session=False,
    )
    db.session.commit()
    db.session.refresh(book)
    return book


def _find_existing(google_books_id, isbn_13, isbn_10, page_count):
    if isbn_13 or isbn_10:
        book = get_book_by_isbn(isbn_13, isbn_10)
        if book:
            logger.info("Found existing book by ISBN: %s (id=%d)", book.title, book.id)
            return book

    book = get_book_by_google_id(google_books_id)
    if book is None:
        return None
    if _has_gaps(book, isbn_13, isbn_10, page_count):
        logger.info("Backfilling ISBN data for existing book: %s (id=%d)", book.title, book.id)
        return backfill_book(book, isbn_13, isbn_10, page_count)
    return book


def get_or_create_book(
    google_books_id,
    title,
    authors="",
    description="",
    thumbnail_url="",
    isbn_13="",
    isbn_10="",
    page_count=0,
    catalog=None,
):
    """Resolve catalog data to a single canonical Book, creating it if needed.

    ``catalog`` is the client used for canonical ISBN lookups; pass None to
    skip them. Storage errors propagate.
    """
    fields = {
        "google_books_id": _clean(google_books_id),
        "title": _clean(title),
        "authors": _clean(authors),
        "description": _clean(description),
        "thumbnail_url": _clean(thumbnail_url),
        "isbn_13": _clean(isbn_13),
        "isbn_10": _clean(isbn_10),
        "page_count": _page_count(page_count),
    }

    existing = _find_existing(fields["google_books_id"], fields["isbn_13"], fields["isbn_10"], fields["page_count"])
    if existing:
        return existing

    if (fields["isbn_13"] or fields["isbn_10"]) and catalog is not None:
        try:
            canonical = catalog.lookup_by_isbn(fields["isbn_13"], fields["isbn_10"])
        except CatalogError as exc:
            logger.warning("Canonical lookup failed, using submitted data for %r: %s", fields["title"], exc)
            canonical = None

        if canonical is not None and canonical.google_books_id:
            logger.info("Using canonical edition %s for %r", canonical.google_books_id, fields["title"])
            fields.update(
                google_books_id=canonical.google_books_id,
                title=canonical.title or fields["title"],
                authors=canonical.authors,
                description=canonical.description,
                thumbnail_url=canonical.thumbnail_url,
                isbn_13=canonical.isbn_13,
                isbn_10=canonical.isbn_10,
                page_count=canonical.page_count,
            )
            existing = _find_existing(
                fields["google_books_id"], fields["isbn_13"], fields["isbn_10"], fields["page_count"]
            )
            if existing:
                return existing

    return _create_book(**fields)


def _create_book(google_books_id, title, authors, description, thumbnail_url, isbn_13, isbn_10, page_count):
    book = Book(
        google_books_id=google_books_id,
        title=title,
        authors=authors,
        description=description or None,
        thumbnail_url=thumbnail_url,
        isbn_13=isbn_13 or None,
        isbn_10=isbn_10 or None,
        page_count=page_count or None,
    )
    try:
        with db.session.begin_nested():
            db.session.add(book)
        db.session.commit()
    except IntegrityError:
        # A concurrent request registered the same volume or ISBN first.
        existing = _find_existing(google_books_id, isbn_13, isbn_10, page_count)
        if existing is None:
            raise
        logger.info("Lost insert race for %r, using existing book id=%d", title, existing.id)
        return existing

    logger.info("Created book %r (id=%d, volume=%s)", book.title, book.id, book.google_books_id)
    return book


# ── Description backfill ────────────────────────────────────────────


def books_without_description(limit=DESCRIPTION_BACKFILL_BATCH):
    query = Book.query.filter(db.or_(Book.description == None, Book.description == "")).order_by(  # noqa: E711
        Book.id.asc()
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def backfill_descriptions(catalog, limit=DESCRIPTION_BACKFILL_BATCH):
    """Fetch descriptions for books that have none. Returns the number updated."""
    updated = 0
    for book in books_without_description(limit):
        try:
            result = catalog.lookup_by_external_id(book.google_books_id)
        except CatalogError as exc:
            logger.warning("Description lookup failed for %s: %s", book.google_books_id, exc)
            continue

        if not result.description:
            continue

        updated += Book.query.filter(
            Book.id == book.id,
            db.or_(Book.description == None, Book.description == ""),  # noqa: E711
        ).update({Book.description: result.description}, synchronize_session=False)

    db.session.commit()
    if updated:
        logger.info("Backfilled descriptions for %d book(s).", updated)
    return updated
