import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or os.urandom(32).hex()
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{BASE_DIR / 'spines.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin access (single shared password, no admin user rows)
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")
    TRUST_PROXY = os.environ.get("TRUST_PROXY", "false").lower() == "true"

    # Google Books catalog
    GOOGLE_BOOKS_API_KEY = os.environ.get("GOOGLE_BOOKS_API_KEY", "")
    CATALOG_BASE_URL = os.environ.get("CATALOG_BASE_URL", "https://www.googleapis.com/books/v1/volumes")
    CATALOG_REQUEST_TIMEOUT = float(os.environ.get("CATALOG_REQUEST_TIMEOUT", "10"))
    CATALOG_CACHE_TTL_SECONDS = int(os.environ.get("CATALOG_CACHE_TTL_SECONDS", str(8 * 3600)))
    CATALOG_CACHE_MAX_ENTRIES = int(os.environ.get("CATALOG_CACHE_MAX_ENTRIES", "1024"))

    # Feeds and shelves
    FEED_DEFAULT_LIMIT = int(os.environ.get("FEED_DEFAULT_LIMIT", "50"))
    FEED_MAX_LIMIT = int(os.environ.get("FEED_MAX_LIMIT", "100"))
    SHELF_PAGE_SIZE = int(os.environ.get("SHELF_PAGE_SIZE", "20"))

    # Rate limiting
    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "300 per hour")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # Session
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 3600 * 24 * 7  # 7 days
    REMEMBER_COOKIE_DURATION = 3600 * 24 * 30
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SECURE = False  # overridden in production
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # Scheduler
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "true").lower() == "true"
    SCHEDULER_CACHE_SWEEP_INTERVAL_MINUTES = int(os.environ.get("SCHEDULER_CACHE_SWEEP_INTERVAL_MINUTES", "10"))
    SCHEDULER_DESCRIPTION_BACKFILL_INTERVAL_MINUTES = int(
        os.environ.get("SCHEDULER_DESCRIPTION_BACKFILL_INTERVAL_MINUTES", "360")
    )
    SCHEDULER_MAX_CONSECUTIVE_FAILURES = int(os.environ.get("SCHEDULER_MAX_CONSECUTIVE_FAILURES", "3"))


class DevelopmentConfig(Config):
    DEBUG = True

    @classmethod
    def init_app(cls, app):
        if not os.environ.get("SECRET_KEY"):
            app.logger.warning("SECRET_KEY not set, using an ephemeral key. Sessions will not survive restarts.")
        if not os.environ.get("ADMIN_PASSWORD"):
            app.logger.warning("ADMIN_PASSWORD not set, admin login is disabled.")


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    TRUST_PROXY = os.environ.get("TRUST_PROXY", "true").lower() == "true"

    @classmethod
    def init_app(cls, app):
        secret_key = os.environ.get("SECRET_KEY", "").strip()
        if not secret_key:
            raise RuntimeError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise RuntimeError(
                "SECRET_KEY is too short for production (minimum 32 characters). "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        lowered_secret = secret_key.lower()
        weak_markers = ("changeme", "change-this", "replace", "secret", "example", "default")
        if any(marker in lowered_secret for marker in weak_markers):
            raise RuntimeError(
                "SECRET_KEY appears to be a placeholder and is not allowed in production. "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )

        if not os.environ.get("ADMIN_PASSWORD", "").strip():
            raise RuntimeError("ADMIN_PASSWORD environment variable is required")

        # The catalog search cache and limiter counters live in process
        # memory; several workers would each hold their own copy.
        web_concurrency = os.environ.get("WEB_CONCURRENCY")
        if web_concurrency:
            try:
                worker_count = int(web_concurrency)
            except ValueError as exc:
                raise RuntimeError("WEB_CONCURRENCY must be an integer when set.") from exc
            if worker_count <= 0:
                raise RuntimeError("WEB_CONCURRENCY must be at least 1 when set.")
        else:
            worker_count = 1

        if worker_count > 1:
            raise RuntimeError(
                f"WEB_CONCURRENCY is set to {web_concurrency} but this application "
                "requires a single worker (in-process catalog cache + in-memory rate limiting). "
                "Set WEB_CONCURRENCY=1 or remove it."
            )


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    SERVER_NAME = "localhost"
    SECRET_KEY = "testing-secret-key"
    ADMIN_PASSWORD = "admin-testing-password"
    GOOGLE_BOOKS_API_KEY = ""


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
