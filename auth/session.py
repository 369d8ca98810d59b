"""
auth/session.py -- Session identity: serialize on login, deserialize per request.

The browser holds one httpOnly cookie (SESSION_COOKIE) whose value is a
signed token carrying only the user id. On every request the id is looked up
in the store, so a user removed from the database is anonymous on their next
request even if the cookie is still valid.

Starlette's SessionMiddleware cookie is a separate thing: it only carries the
OAuth state between the provider redirect and the callback.
"""

from __future__ import annotations

from fastapi import Request, Response

from auth.models import User
from auth.store import UserStore
from auth.tokens import create_session_token, decode_session_token

SESSION_COOKIE = "auth_session"


def serialize_user(user: User, request: Request) -> str:
    """Return the session token for user, signed with the app's secret key."""
    settings = request.app.state.settings
    return create_session_token(user.id, settings.secret_key, settings.session_expire_seconds)


def deserialize_user(request: Request) -> User | None:
    """Resolve the request's session cookie to a User, or None if anonymous.

    StoreUnavailable propagates; the app answers it with a 503.
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    user_id = decode_session_token(token, request.app.state.settings.secret_key)
    if user_id is None:
        return None
    user_store: UserStore = request.app.state.user_store
    return user_store.get_by_id(user_id)


def login_user(request: Request, response: Response, user: User) -> None:
    """Establish a logged-in session for user on the outgoing response.

    httponly: scripts cannot read the cookie.
    samesite="lax": sent on top-level navigations (the OAuth callback is one),
        not on cross-site POSTs.
    max_age matches the token expiry so both lapse together.
    """
    settings = request.app.state.settings
    response.set_cookie(
        SESSION_COOKIE,
        value=serialize_user(user, request),
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_expire_seconds,
    )
    response.headers["Cache-Control"] = "no-store"
    request.app.state.user_store.update_last_login(user.id)


def logout_user(response: Response) -> None:
    """Clear the session identity."""
    response.delete_cookie(SESSION_COOKIE)
