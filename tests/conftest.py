"""
tests/conftest.py -- Shared test fixtures for SecretShare integration tests.

This module provides:
  - make_settings(): Settings for an isolated in-memory DB, OAuth configured
  - app / client: a real app built by create_app(), TestClient with
    follow_redirects=False so tests can assert on Location headers
  - install_oauth(): swaps the authlib registry for AsyncMock clients

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. Each app gets a fresh uuid-named DB so tests never share users.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient

from api.main import create_app
from auth.store import UserStore
from core.config import Settings

TEST_SECRET_KEY = "test-secret-key-0123456789abcdef0123456789abcdef"


def make_settings(**overrides) -> Settings:
    """Build Settings that never touch the real DB, env or OAuth providers."""
    values = {
        "debug": True,
        "secret_key": TEST_SECRET_KEY,
        "database_url": f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true",
        "allowed_hosts": ["testserver"],
        "rate_limit_enabled": False,
        "google_client_id": "google-client-id",
        "google_client_secret": "google-client-secret",
        "facebook_app_id": "facebook-app-id",
        "facebook_app_secret": "facebook-app-secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def install_oauth(
    app: FastAPI,
    token: dict | None = None,
    profile: dict | None = None,
    exchange_error: Exception | None = None,
) -> MagicMock:
    """Replace app.state.oauth with a registry whose clients never hit the network.

    Returns the shared mock client so tests can inspect calls.
      token:          what authorize_access_token() returns (Google userinfo lives here)
      profile:        JSON body returned by client.get("me") (Facebook)
      exchange_error: raised by authorize_access_token() instead of returning
    """
    client = MagicMock()
    client.authorize_redirect = AsyncMock(
        return_value=RedirectResponse("https://provider.example/consent", status_code=302)
    )
    if exchange_error is not None:
        client.authorize_access_token = AsyncMock(side_effect=exchange_error)
    else:
        client.authorize_access_token = AsyncMock(return_value=token or {"access_token": "tok"})

    profile_resp = MagicMock()
    profile_resp.json.return_value = profile or {}
    profile_resp.raise_for_status.return_value = None
    client.get = AsyncMock(return_value=profile_resp)

    registry = MagicMock()
    registry.create_client.return_value = client
    app.state.oauth = registry
    return client


def google_token(sub: str = "109876543210", email: str = "alice@gmail.com", verified: bool = True) -> dict:
    return {
        "access_token": "google-access-token",
        "userinfo": {"sub": sub, "email": email, "email_verified": verified},
    }


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient running the real lifespan against an isolated DB.

    follow_redirects=False is essential: the tests assert on redirect
    locations, which are invisible once the client follows them.
    """
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def user_store(client: TestClient) -> UserStore:
    return client.app.state.user_store


def register(client: TestClient, username: str = "alice@example.com", password: str = "hunter22"):
    return client.post("/register", data={"username": username, "password": password})


def login(client: TestClient, username: str = "alice@example.com", password: str = "hunter22"):
    return client.post("/login", data={"username": username, "password": password})
