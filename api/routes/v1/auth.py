"""
api/routes/v1/auth.py -- Read-only identity endpoints.

Routes:
  GET /api/v1/auth/me         -- current user info (requires auth)
  GET /api/v1/auth/providers  -- list enabled OAuth providers (public)

Login, registration and logout are form posts served by web/routes.py; the
session cookie they set authenticates these endpoints too.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MeResponse, OAuthProviderInfo
from auth.dependencies import get_current_user
from auth.models import User
from auth.oauth import get_enabled_providers

router = APIRouter()


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(
        user_id=current_user.id,
        username=current_user.username,
        provider=current_user.provider,
        email=current_user.email,
        has_secret=current_user.secret is not None,
    )


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
def list_providers(request: Request) -> list[OAuthProviderInfo]:
    """Return the configured OAuth providers. Empty list if none are set up."""
    return [OAuthProviderInfo(**p) for p in get_enabled_providers(request.app.state.settings)]
