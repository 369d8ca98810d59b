"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

try_get_current_user() is the soft variant (returns None when anonymous).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.

Web routes use the soft variant and redirect to /login themselves; the JSON
API uses the hard one.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.session import deserialize_user


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None for an anonymous request.

    The result is cached on request.state so templates and handlers that ask
    twice do not hit the store twice.
    """
    if not hasattr(request.state, "user"):
        request.state.user = deserialize_user(request)
    return request.state.user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
