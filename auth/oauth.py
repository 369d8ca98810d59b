"""
auth/oauth.py -- Authlib OAuth provider registry and profile extraction.

build_oauth(settings) returns a registry containing only the providers whose
client ID and secret are both configured. The login and register templates
render buttons from get_enabled_providers(settings).

  OAuth state parameter (CSRF protection) is handled by authlib via the
  Starlette SessionMiddleware: the state is stored in the session before the
  redirect to the provider and verified in the callback.

Supported providers:
  google   -- Authorization code flow; OIDC discovery. Profile id is the
              id_token `sub` claim; email is kept only when verified.
  facebook -- Authorization code flow; static Graph API endpoints. Profile id
              comes from GET /me. Facebook accounts carry no email.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

from authlib.integrations.starlette_client import OAuth

from auth.exceptions import OAuthExchangeFailure
from core.config import Settings

logger = logging.getLogger("secretshare.auth.oauth")

_FACEBOOK_GRAPH = "https://graph.facebook.com/v19.0/"

# ---------------------------------------------------------------------------
# Authlib OAuth registry
# ---------------------------------------------------------------------------


def build_oauth(settings: Settings) -> OAuth:
    """Create an OAuth registry holding every configured provider."""
    oauth = OAuth()

    if settings.google_client_id and settings.google_client_secret:
        oauth.register(
            name="google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
            client_kwargs={"scope": "openid profile email"},
        )
        logger.info("Google OAuth provider registered")

    if settings.facebook_app_id and settings.facebook_app_secret:
        oauth.register(
            name="facebook",
            client_id=settings.facebook_app_id,
            client_secret=settings.facebook_app_secret,
            access_token_url=f"{_FACEBOOK_GRAPH}oauth/access_token",  # noqa: S106 -- URL, not a password
            authorize_url="https://www.facebook.com/v19.0/dialog/oauth",
            api_base_url=_FACEBOOK_GRAPH,
            client_kwargs={"scope": "public_profile"},
        )
        logger.info("Facebook OAuth provider registered")

    return oauth


# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------


def get_enabled_providers(settings: Settings) -> list[dict]:
    """Return {"name", "label"} for every provider with credentials configured."""
    providers: list[dict] = []
    if settings.google_client_id and settings.google_client_secret:
        providers.append({"name": "google", "label": "Google"})
    if settings.facebook_app_id and settings.facebook_app_secret:
        providers.append({"name": "facebook", "label": "Facebook"})
    return providers


# ---------------------------------------------------------------------------
# Profile extraction -- provider-specific normalization
# ---------------------------------------------------------------------------


async def get_oauth_profile(client, provider: str, token: dict) -> tuple[str, str | None]:
    """Extract (profile_id, email) from a provider token response.

    profile_id becomes the provider-scoped username. email is None when the
    provider does not supply a verified one.

    Raises:
        OAuthExchangeFailure: if no profile id can be obtained.
    """
    if provider == "google":
        return _get_google_profile(token)
    elif provider == "facebook":
        return await _get_facebook_profile(client, token)
    else:
        raise OAuthExchangeFailure(provider, "unknown provider")


def _get_google_profile(token: dict) -> tuple[str, str | None]:
    """Read sub and email from the parsed id_token claims."""
    userinfo = token.get("userinfo")
    if not userinfo:
        raise OAuthExchangeFailure("google", "no userinfo in token response")

    subject = userinfo.get("sub")
    if not subject:
        raise OAuthExchangeFailure("google", "missing sub claim")

    email = userinfo.get("email") if userinfo.get("email_verified", False) else None
    return str(subject), email


async def _get_facebook_profile(client, token: dict) -> tuple[str, str | None]:
    """Fetch the numeric profile id from the Graph API."""
    try:
        resp = await client.get("me", params={"fields": "id"}, token=token)
        resp.raise_for_status()
        profile = resp.json()
    except Exception as exc:
        raise OAuthExchangeFailure("facebook", f"profile request failed: {exc}") from exc

    profile_id = profile.get("id")
    if not profile_id:
        raise OAuthExchangeFailure("facebook", "missing id in profile response")
    return str(profile_id), None
