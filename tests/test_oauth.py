"""Unit tests for auth/oauth.py -- provider registry and profile extraction.

The authlib client is an AsyncMock; no network call is made. Coroutines are
driven with asyncio.run() so no async pytest plugin is required.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from auth.exceptions import OAuthExchangeFailure
from auth.oauth import build_oauth, get_enabled_providers, get_oauth_profile
from tests.conftest import google_token, make_settings


class TestProviderRegistry:
    def test_both_providers_enabled(self):
        settings = make_settings()
        names = [p["name"] for p in get_enabled_providers(settings)]
        assert names == ["google", "facebook"]

    def test_provider_needs_id_and_secret(self):
        settings = make_settings(google_client_secret="", facebook_app_id="")
        assert get_enabled_providers(settings) == []

    def test_build_oauth_registers_only_configured(self):
        oauth = build_oauth(make_settings(facebook_app_secret=""))
        assert oauth.create_client("google") is not None
        assert oauth.create_client("facebook") is None


class TestGoogleProfile:
    def test_verified_email_is_kept(self):
        profile_id, email = asyncio.run(get_oauth_profile(None, "google", google_token()))
        assert profile_id == "109876543210"
        assert email == "alice@gmail.com"

    def test_unverified_email_is_dropped(self):
        profile_id, email = asyncio.run(get_oauth_profile(None, "google", google_token(verified=False)))
        assert profile_id == "109876543210"
        assert email is None

    def test_missing_userinfo(self):
        with pytest.raises(OAuthExchangeFailure):
            asyncio.run(get_oauth_profile(None, "google", {"access_token": "x"}))

    def test_missing_sub(self):
        token = {"userinfo": {"email": "a@gmail.com", "email_verified": True}}
        with pytest.raises(OAuthExchangeFailure):
            asyncio.run(get_oauth_profile(None, "google", token))


class TestFacebookProfile:
    def _client(self, body=None, error=None):
        resp = MagicMock()
        resp.json.return_value = body or {}
        resp.raise_for_status.return_value = None
        client = MagicMock()
        client.get = AsyncMock(return_value=resp, side_effect=error)
        return client

    def test_profile_id_from_graph_api(self):
        client = self._client({"id": "10223344556677"})
        profile_id, email = asyncio.run(get_oauth_profile(client, "facebook", {"access_token": "t"}))
        assert profile_id == "10223344556677"
        assert email is None
        client.get.assert_awaited_once()

    def test_missing_id(self):
        with pytest.raises(OAuthExchangeFailure):
            asyncio.run(get_oauth_profile(self._client({"name": "No Id"}), "facebook", {}))

    def test_request_failure(self):
        client = self._client(error=RuntimeError("connection reset"))
        with pytest.raises(OAuthExchangeFailure) as excinfo:
            asyncio.run(get_oauth_profile(client, "facebook", {}))
        assert excinfo.value.provider == "facebook"


def test_unknown_provider():
    with pytest.raises(OAuthExchangeFailure):
        asyncio.run(get_oauth_profile(None, "myspace", {}))
