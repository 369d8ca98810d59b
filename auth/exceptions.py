"""
auth/exceptions.py -- Typed failures raised by the auth layer.

Routes translate these into redirects (credential and OAuth failures) or an
explicit 503 (StoreUnavailable). Nothing in auth/ swallows them.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error the auth layer raises on purpose."""


class DuplicateUsername(AuthError):
    """The username is already taken (by any provider)."""

    def __init__(self, username: str) -> None:
        super().__init__(f"username already registered: {username!r}")
        self.username = username


class InvalidCredentials(AuthError):
    """Local login failed, or registration was attempted with blank fields.

    Deliberately carries no detail about which part was wrong.
    """


class OAuthExchangeFailure(AuthError):
    """The provider callback could not be turned into a profile id."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider} OAuth: {reason}")
        self.provider = provider
        self.reason = reason


class StoreUnavailable(AuthError):
    """The user store could not be reached or the query failed."""
