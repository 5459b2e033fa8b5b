"""Google Books catalog client.

Search results are normalized into :class:`CatalogResult` records,
de-duplicated by ISBN and cached per exact query string. ISBN and volume-id
lookups back the book registry's canonical-edition resolution and the
description backfill job.
"""

import logging
from dataclasses import asdict, dataclass

import requests
from flask import current_app

from .cache import SearchCache

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.googleapis.com/books/v1/volumes"
REQUEST_TIMEOUT = 10  # seconds per HTTP request

SEARCH_RESULT_LIMIT = 20
# Fetch more than we return so edition variants can be dropped first.
SEARCH_FETCH_SIZE = 40


class CatalogError(RuntimeError):
    """The catalog could not be reached or returned an unusable response."""


class CatalogNotFound(CatalogError):
    pass


@dataclass(frozen=True)
class CatalogResult:
    google_books_id: str
    title: str
    authors: str = ""
    description: str = ""
    thumbnail_url: str = ""
    isbn_13: str = ""
    isbn_10: str = ""
    page_count: int = 0
    published_year: str = ""
    language: str = ""

    def to_dict(self):
        return asdict(self)


def _https(url):
    return url.replace("http://", "https://", 1) if url else ""


def normalize_volume(item):
    """Build a CatalogResult from a Google Books volume resource."""
    info = item.get("volumeInfo") or {}

    isbn_13 = ""
    isbn_10 = ""
    for identifier in info.get("industryIdentifiers") or []:
        if identifier.get("type") == "ISBN_13":
            isbn_13 = identifier.get("identifier", "")
        elif identifier.get("type") == "ISBN_10":
            isbn_10 = identifier.get("identifier", "")

    links = info.get("imageLinks") or {}
    thumbnail = _https(links.get("thumbnail") or links.get("smallThumbnail") or "")

    # publishedDate comes as "2021", "2021-05" or "2021-05-04"
    published = info.get("publishedDate") or ""

    return CatalogResult(
        google_books_id=item.get("id", ""),
        title=info.get("title", ""),
        authors=", ".join(info.get("authors") or []),
        description=info.get("description", ""),
        thumbnail_url=thumbnail,
        isbn_13=isbn_13,
        isbn_10=isbn_10,
        page_count=int(info.get("pageCount") or 0),
        published_year=published[:4] if len(published) >= 4 else "",
        language=info.get("language", ""),
    )


def dedupe_by_isbn(results, limit=SEARCH_RESULT_LIMIT):
    """Drop results sharing an ISBN-13 or ISBN-10 with an earlier one."""
    seen_13 = set()
    seen_10 = set()
    kept = []
    for result in results:
        if result.isbn_13 and result.isbn_13 in seen_13:
            continue
        if result.isbn_10 and result.isbn_10 in seen_10:
            continue
        if result.isbn_13:
            seen_13.add(result.isbn_13)
        if result.isbn_10:
            seen_10.add(result.isbn_10)
        kept.append(result)
        if len(kept) >= limit:
            break
    return kept


class GoogleBooksClient:
    def __init__(self, api_key="", base_url=DEFAULT_BASE_URL, timeout=REQUEST_TIMEOUT, cache=None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else SearchCache(ttl=8 * 3600)

    def _params(self, **params):
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _get_json(self, url, params):
        try:
            resp = requests.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CatalogError(f"Google Books request failed: {exc}") from exc

        if resp.status_code == 404:
            raise CatalogNotFound(f"Google Books returned 404 for {url}")
        if resp.status_code != 200:
            raise CatalogError(f"Google Books API returned status {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise CatalogError(f"Google Books returned an undecodable response: {exc}") from exc

    def search(self, query):
        """Title search returning at most SEARCH_RESULT_LIMIT distinct editions."""
        if not query or not query.strip():
            return []

        cached = self.cache.get(query)
        if cached is not None:
            logger.info("Catalog cache hit: %r", query)
            return cached
        logger.info("Catalog cache miss: %r", query)

        data = self._get_json(
            self.base_url,
            self._params(q=f"intitle:{query}", maxResults=SEARCH_FETCH_SIZE, printType="books"),
        )
        results = dedupe_by_isbn([normalize_volume(item) for item in data.get("items") or []])

        self.cache.set(query, results)
        return results

    def lookup_by_isbn(self, isbn_13="", isbn_10=""):
        """Find the canonical edition for an ISBN, trying ISBN-13 before ISBN-10.

        Returns None when the catalog answered but had no match. Raises
        CatalogError only when every attempted lookup failed in transport.
        """
        last_error = None
        answered = False
        for isbn in (isbn_13, isbn_10):
            if not isbn:
                continue
            try:
                data = self._get_json(
                    self.base_url,
                    self._params(q=f"isbn:{isbn}", maxResults=1, printType="books"),
                )
            except CatalogError as exc:
                logger.warning("Catalog ISBN lookup failed for %s: %s", isbn, exc)
                last_error = exc
                continue

            answered = True
            items = data.get("items") or []
            if not items:
                continue

            result = normalize_volume(items[0])
            logger.info("Found canonical edition for ISBN %s: %s", isbn, result.title)
            return result

        if last_error is not None and not answered:
            raise last_error
        return None

    def lookup_by_external_id(self, google_books_id):
        if not google_books_id:
            raise ValueError("google_books_id is required")
        data = self._get_json(f"{self.base_url}/{google_books_id}", self._params())
        return normalize_volume(data)


def init_catalog(app):
    """Attach an app-scoped catalog client (and its search cache) to *app*."""
    cache = SearchCache(
        ttl=app.config.get("CATALOG_CACHE_TTL_SECONDS", 8 * 3600),
        maxsize=app.config.get("CATALOG_CACHE_MAX_ENTRIES", 1024),
    )
    client = GoogleBooksClient(
        api_key=app.config.get("GOOGLE_BOOKS_API_KEY", ""),
        base_url=app.config.get("CATALOG_BASE_URL", DEFAULT_BASE_URL),
        timeout=app.config.get("CATALOG_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        cache=cache,
    )
    app.extensions["catalog"] = client
    return client


def get_catalog_client():
    return current_app.extensions["catalog"]


def canonical_lookup_client():
    """The catalog client when canonical ISBN lookups are enabled, else None."""
    if not current_app.config.get("GOOGLE_BOOKS_API_KEY"):
        return None
    return get_catalog_client()
