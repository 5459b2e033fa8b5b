"""Configuration hardening tests."""

import pytest

from spines.config import ProductionConfig


class _DummyApp:
    logger = None


@pytest.fixture()
def prod_env(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "StrongProductionKey0123456789ABCDEF")
    monkeypatch.setenv("ADMIN_PASSWORD", "a-long-admin-password")
    monkeypatch.delenv("WEB_CONCURRENCY", raising=False)
    return monkeypatch


def test_production_accepts_valid_settings(prod_env):
    # Should not raise.
    ProductionConfig.init_app(_DummyApp())


def test_production_requires_secret_key(prod_env):
    prod_env.delenv("SECRET_KEY")

    with pytest.raises(RuntimeError, match="SECRET_KEY environment variable must be set"):
        ProductionConfig.init_app(_DummyApp())


def test_production_rejects_short_secret_key(prod_env):
    prod_env.setenv("SECRET_KEY", "too-short")

    with pytest.raises(RuntimeError, match="SECRET_KEY is too short"):
        ProductionConfig.init_app(_DummyApp())


def test_production_rejects_placeholder_secret_key(prod_env):
    prod_env.setenv("SECRET_KEY", "change-this-secret-key-0123456789")

    with pytest.raises(RuntimeError, match="SECRET_KEY appears to be a placeholder"):
        ProductionConfig.init_app(_DummyApp())


def test_production_requires_admin_password(prod_env):
    prod_env.setenv("ADMIN_PASSWORD", "   ")

    with pytest.raises(RuntimeError, match="ADMIN_PASSWORD environment variable is required"):
        ProductionConfig.init_app(_DummyApp())


def test_production_rejects_non_integer_web_concurrency(prod_env):
    prod_env.setenv("WEB_CONCURRENCY", "many")

    with pytest.raises(RuntimeError, match="WEB_CONCURRENCY must be an integer"):
        ProductionConfig.init_app(_DummyApp())


def test_production_rejects_zero_web_concurrency(prod_env):
    prod_env.setenv("WEB_CONCURRENCY", "0")

    with pytest.raises(RuntimeError, match="WEB_CONCURRENCY must be at least 1"):
        ProductionConfig.init_app(_DummyApp())


def test_production_rejects_multiple_workers(prod_env):
    prod_env.setenv("WEB_CONCURRENCY", "4")

    with pytest.raises(RuntimeError, match="requires a single worker"):
        ProductionConfig.init_app(_DummyApp())


def test_production_allows_single_worker(prod_env):
    prod_env.setenv("WEB_CONCURRENCY", "1")
    ProductionConfig.init_app(_DummyApp())


def test_catalog_defaults(monkeypatch):
    import importlib

    import spines.config as config_module

    for name in ("CATALOG_REQUEST_TIMEOUT", "CATALOG_CACHE_TTL_SECONDS", "TRUST_PROXY"):
        monkeypatch.delenv(name, raising=False)
    reloaded = importlib.reload(config_module)
    try:
        assert reloaded.Config.CATALOG_REQUEST_TIMEOUT == 10.0
        assert reloaded.Config.CATALOG_CACHE_TTL_SECONDS == 8 * 3600
        assert reloaded.Config.TRUST_PROXY is False
        assert reloaded.ProductionConfig.TRUST_PROXY is True
    finally:
        importlib.reload(config_module)
