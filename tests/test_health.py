"""
tests/test_health.py -- Integration tests for the JSON API.

Covers:
  - GET /api/v1/health: 200 with status, version and components, no auth
  - GET /api/v1/health reports a broken database as degraded
  - GET /api/v1/auth/me: 401 envelope when anonymous, identity when logged in
  - GET /api/v1/auth/providers: enabled providers only
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import create_app
from tests.conftest import make_settings, register


def test_health_returns_200_with_components(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert data["components"] == {"app": "ok", "database": "ok"}


def test_health_reports_database_error(client, user_store, monkeypatch):
    monkeypatch.setattr(user_store, "ping", lambda: False)
    data = client.get("/api/v1/health").json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"


def test_me_requires_auth(client):
    resp = client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": {"code": "unauthorized", "message": "Authentication required.", "detail": None}}


def test_me_returns_identity_without_secret(client, user_store):
    register(client, "carol@example.com", "pw-carol-1")
    client.post("/submit", data={"secret": "I never read the terms"})

    resp = client.get("/api/v1/auth/me")
    assert resp.status_code == 200
    data = resp.json()
    assert data["username"] == "carol@example.com"
    assert data["provider"] == "local"
    assert data["email"] == "carol@example.com"
    assert data["has_secret"] is True
    assert "I never read the terms" not in resp.text


def test_providers_lists_enabled_only():
    app = create_app(make_settings(facebook_app_id="", facebook_app_secret=""))
    with TestClient(app) as c:
        resp = c.get("/api/v1/auth/providers")
    assert resp.status_code == 200
    assert resp.json() == [{"name": "google", "label": "Google"}]


def test_unknown_api_path_is_json_404(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"
