"""Unit tests for core/config.py -- SECRET_KEY policy and env mapping."""

import pytest

from core.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("SECRET_KEY", "DEBUG", "FACEBOOK_APP_ID", "GOOGLE_CLIENT_ID"):
        monkeypatch.delenv(name, raising=False)


def test_production_requires_secret_key():
    with pytest.raises(ValueError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False)


def test_debug_generates_secret_key():
    settings = Settings(_env_file=None, debug=True)
    assert len(settings.secret_key) >= 32


def test_short_secret_key_rejected():
    with pytest.raises(ValueError, match="at least 32"):
        Settings(_env_file=None, secret_key="too-short")


def test_reads_provider_credentials_from_env(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s" * 32)
    monkeypatch.setenv("FACEBOOK_APP_ID", "fb-app")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "g-client")
    settings = Settings(_env_file=None)
    assert settings.facebook_app_id == "fb-app"
    assert settings.google_client_id == "g-client"
    assert settings.session_expire_seconds == 86400
