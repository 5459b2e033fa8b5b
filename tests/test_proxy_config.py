"""Tests for conditional ProxyFix wrapping."""

from unittest.mock import patch

import pytest
from werkzeug.middleware.proxy_fix import ProxyFix

from spines.config import ProductionConfig


def test_testing_app_does_not_wrap_proxy_by_default(app):
    assert not isinstance(app.wsgi_app, ProxyFix)


@pytest.fixture()
def prod_app_factory(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "StrongProductionKey0123456789ABCDEF")
    monkeypatch.setenv("ADMIN_PASSWORD", "a-long-admin-password")
    monkeypatch.delenv("WEB_CONCURRENCY", raising=False)
    monkeypatch.setattr(ProductionConfig, "SCHEDULER_ENABLED", False)
    monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "sqlite:///:memory:")

    def _build(trust_proxy):
        monkeypatch.setattr(ProductionConfig, "TRUST_PROXY", trust_proxy)
        with (
            patch("spines.upgrade"),
            patch("spines._configure_logging"),
        ):
            from spines import create_app

            return create_app("production")

    return _build


def test_production_app_wraps_proxy_when_trusted(prod_app_factory):
    prod_app = prod_app_factory(True)
    assert isinstance(prod_app.wsgi_app, ProxyFix)


def test_production_app_can_disable_proxy_trust(prod_app_factory):
    prod_app = prod_app_factory(False)
    assert not isinstance(prod_app.wsgi_app, ProxyFix)
