"""
auth/models.py -- Domain dataclass for the single User entity.

Pattern: Data class (pure data container, zero logic). The store and the auth
helpers do the work; routes and templates only read fields.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass

PROVIDERS = ("local", "google", "facebook")


@dataclass
class User:
    """A SecretShare account.

    username is the email address for local accounts and the provider's opaque
    profile id for OAuth accounts. It is unique across all providers.

    hashed_password is None for OAuth accounts (they have no local password).
    secret is None until the user submits one; each submission overwrites it.
    """

    username: str
    provider: str  # "local", "google", "facebook"
    id: int | None = None
    hashed_password: str | None = None  # None = OAuth-only user
    email: str | None = None
    secret: str | None = None
    created_at: str | None = None
    last_login: str | None = None

    @property
    def display_name(self) -> str:
        return self.email or f"{self.provider} user"
