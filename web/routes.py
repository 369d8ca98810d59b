"""
web/routes.py -- Jinja2 template routes for the SecretShare web UI.

These routes serve server-rendered HTML and redirects. They share app.state
with the JSON API (same user store, settings and OAuth registry).

Route registration order matters. GET /auth/{provider}/secrets is registered
before GET /auth/{provider} only for readability; the two never collide
because the callback has an extra path segment.

Routes:
  GET  /                          -- landing page
  GET  /auth/{provider}           -- OAuth redirect to Google / Facebook consent
  GET  /auth/{provider}/secrets   -- OAuth callback handler
  GET  /login                     -- login form
  POST /login                     -- handle password login
  GET  /register                  -- registration form
  POST /register                  -- create local account and log in
  GET  /secrets                   -- every submitted secret (auth required)
  GET  /submit                    -- secret submission form (auth required)
  POST /submit                    -- overwrite the current user's secret (auth required)
  GET  /logout                    -- clear session, redirect /

StoreUnavailable is not caught here (except in the OAuth callback, which
treats every failure as a failed login). The application-level handler in
api/main.py turns it into an explicit 503 page.
"""

import logging
from pathlib import Path
from typing import Optional

from authlib.common.errors import AuthlibBaseError
from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from httpx import HTTPError

from api.limiter import limiter, login_rate_limit
from auth.dependencies import try_get_current_user
from auth.exceptions import DuplicateUsername, InvalidCredentials, OAuthExchangeFailure, StoreUnavailable
from auth.oauth import get_enabled_providers, get_oauth_profile
from auth.session import login_user, logout_user
from auth.store import UserStore
from auth.tokens import MAX_PASSWORD_BYTES, authenticate_user, register_user

logger = logging.getLogger("secretshare.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# layout.html calls this to decide between "Log In" and "Log Out" links.
templates.env.globals["try_get_current_user"] = try_get_current_user
router = APIRouter()

MAX_SECRET_LENGTH = 1000
_MAX_USERNAME_LENGTH = 72

# Whitelist mapping for ?error= query params. The raw query value is NEVER
# passed to templates, only the message from this dict is.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid username or password.",
    "oauth_failed": "Third-party sign-in failed. Please try again.",
    "user_exists": "A user with that email address is already registered.",
    "missing_fields": "Please enter an email address and a password.",
    "too_long": "Email address must be at most 72 characters and password at most 72 bytes.",
    "empty_secret": "Your secret cannot be empty.",
    "secret_too_long": f"Secrets are limited to {MAX_SECRET_LENGTH} characters.",
}


def _error_message(request: Request) -> Optional[str]:
    return _ERROR_MESSAGES.get(request.query_params.get("error", ""))


def _require_auth(request: Request) -> Optional[RedirectResponse]:
    """Return a redirect to /login for anonymous requests, None otherwise.

    Call at the top of protected route handlers:
        if redirect := _require_auth(request):
            return redirect
    """
    if try_get_current_user(request) is None:
        return RedirectResponse("/login", status_code=302)
    return None


def _login_redirect(request: Request, user, target: str = "/secrets") -> RedirectResponse:
    resp = RedirectResponse(target, status_code=302)
    login_user(request, resp, user)
    return resp


# ---------------------------------------------------------------------------
# GET / -- landing page
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "home.html")


# ---------------------------------------------------------------------------
# OAuth (Google, Facebook)
# ---------------------------------------------------------------------------


@router.get("/auth/{provider}/secrets", name="oauth_callback")
async def oauth_callback(request: Request, provider: str) -> RedirectResponse:
    """Handle the provider callback and log the user in.

    Flow:
      1. Exchange the authorization code for a token (authlib checks state).
      2. Extract the provider profile id (and verified email, for Google).
      3. Find-or-create the account keyed on (profile id, provider).
      4. Set the session cookie and redirect to /secrets.

    Any failure redirects to /login?error=oauth_failed.
    """
    enabled = {p["name"] for p in get_enabled_providers(request.app.state.settings)}
    if provider not in enabled:
        return RedirectResponse("/login?error=oauth_failed", status_code=302)

    client = request.app.state.oauth.create_client(provider)
    user_store: UserStore = request.app.state.user_store

    try:
        token = await client.authorize_access_token(request)
    except (AuthlibBaseError, HTTPError):
        logger.exception("OAuth token exchange failed for provider %r", provider)
        return RedirectResponse("/login?error=oauth_failed", status_code=302)

    try:
        profile_id, email = await get_oauth_profile(client, provider, token)
        user, created = user_store.find_or_create(profile_id, provider, email=email)
        resp = _login_redirect(request, user)
    except OAuthExchangeFailure as exc:
        logger.warning("OAuth login rejected: %s", exc)
        return RedirectResponse("/login?error=oauth_failed", status_code=302)
    except DuplicateUsername:
        logger.warning("OAuth login rejected: %s profile id already owned by another provider", provider)
        return RedirectResponse("/login?error=oauth_failed", status_code=302)
    except StoreUnavailable:
        logger.exception("User store unavailable during %s OAuth callback", provider)
        return RedirectResponse("/login?error=oauth_failed", status_code=302)

    if created:
        logger.info("Created %s account id=%d", provider, user.id)
    return resp


@router.get("/auth/{provider}")
async def oauth_redirect(request: Request, provider: str) -> RedirectResponse:
    """Redirect the browser to the provider's consent page.

    The provider name is checked against the enabled list first, so a made-up
    name can never reach authlib.
    """
    enabled = {p["name"] for p in get_enabled_providers(request.app.state.settings)}
    if provider not in enabled:
        return RedirectResponse("/login?error=oauth_failed", status_code=302)

    client = request.app.state.oauth.create_client(provider)
    redirect_uri = str(request.url_for("oauth_callback", provider=provider))
    try:
        return await client.authorize_redirect(request, redirect_uri)
    except (AuthlibBaseError, HTTPError):
        logger.exception("Could not start OAuth flow for provider %r", provider)
        return RedirectResponse("/login?error=oauth_failed", status_code=302)


# ---------------------------------------------------------------------------
# Local login / registration
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page with username/password form and OAuth buttons."""
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "error_msg": _error_message(request),
            "providers": get_enabled_providers(request.app.state.settings),
        },
    )


@router.post("/login", response_class=HTMLResponse)
@limiter.limit(login_rate_limit)
def login_post(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
) -> RedirectResponse:
    """Handle the username/password login form."""
    try:
        user = authenticate_user(request.app.state.user_store, username, password)
    except InvalidCredentials:
        return RedirectResponse("/login?error=bad_credentials", status_code=302)
    return _login_redirect(request, user)


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "register.html",
        {
            "error_msg": _error_message(request),
            "providers": get_enabled_providers(request.app.state.settings),
        },
    )


@router.post("/register", response_class=HTMLResponse)
@limiter.limit(login_rate_limit)
def register_post(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
) -> RedirectResponse:
    """Create a local account, log it in, and go to /secrets."""
    if len(username) > _MAX_USERNAME_LENGTH or len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return RedirectResponse("/register?error=too_long", status_code=302)
    try:
        user = register_user(request.app.state.user_store, username, password)
    except InvalidCredentials:
        return RedirectResponse("/register?error=missing_fields", status_code=302)
    except DuplicateUsername:
        logger.info("Registration rejected: username already taken")
        return RedirectResponse("/register?error=user_exists", status_code=302)
    return _login_redirect(request, user)


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and return to the landing page."""
    resp = RedirectResponse("/", status_code=302)
    logout_user(resp)
    return resp


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


@router.get("/secrets", response_class=HTMLResponse)
def secrets_page(request: Request) -> HTMLResponse:
    """List every user who has submitted a secret. Any logged-in user may view."""
    if redirect := _require_auth(request):
        return redirect
    user_store: UserStore = request.app.state.user_store
    return templates.TemplateResponse(
        request,
        "secrets.html",
        {
            "users_with_secrets": user_store.list_with_secrets(),
        },
    )


@router.get("/submit", response_class=HTMLResponse)
def submit_form(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    return templates.TemplateResponse(
        request,
        "submit.html",
        {
            "error_msg": _error_message(request),
            "max_length": MAX_SECRET_LENGTH,
        },
    )


@router.post("/submit", response_class=HTMLResponse)
def submit_post(request: Request, secret: str = Form(default="")) -> RedirectResponse:
    """Overwrite the current user's secret. Last write wins."""
    if redirect := _require_auth(request):
        return redirect
    secret = secret.strip()
    if not secret:
        return RedirectResponse("/submit?error=empty_secret", status_code=302)
    if len(secret) > MAX_SECRET_LENGTH:
        return RedirectResponse("/submit?error=secret_too_long", status_code=302)

    user = try_get_current_user(request)
    request.app.state.user_store.set_secret(user.id, secret)
    return RedirectResponse("/secrets", status_code=302)
