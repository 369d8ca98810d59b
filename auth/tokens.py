"""
auth/tokens.py -- Password hashing, local accounts, and session tokens.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). bcrypt embeds a fresh salt
       in every hash, so the stored string is "hash+salt" in one column. The
       _DUMMY_HASH constant enables timing equalization in authenticate_user()
       so response time does not reveal whether a username exists.

  Session tokens: python-jose with HS256. A token carries only the user id
       (sub) and an expiry; everything else is looked up in the store on each
       request. Decoding returns None on any failure and the session layer
       treats that as anonymous.

  Keys are passed in by the caller (from app.state.settings). This module
  holds no configuration of its own.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.exceptions import InvalidCredentials
from auth.models import User
from auth.store import UserStore

logger = logging.getLogger("secretshare.auth")

_ALGORITHM = "HS256"

# bcrypt rejects (5.x) or silently truncates (4.x) anything longer.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Callers must keep the encoded password within MAX_PASSWORD_BYTES.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store, or an over-long password on bcrypt 5.x.
        return False


# Computed once at import so the first login is not measurably slower.
_DUMMY_HASH: str = hash_password("secretshare_timing_dummy")


# ---------------------------------------------------------------------------
# Local accounts
# ---------------------------------------------------------------------------


def register_user(store: UserStore, username: str, password: str) -> User:
    """Create a local account and return it.

    The username doubles as the email address. Raises InvalidCredentials for
    blank fields or a password over MAX_PASSWORD_BYTES, and DuplicateUsername
    if the username is taken by any provider. A failed registration never
    touches the existing record.
    """
    username = username.strip()
    if not username or not password:
        raise InvalidCredentials("username and password are required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidCredentials("password is longer than 72 bytes")
    user = User(
        username=username,
        provider="local",
        email=username,
        hashed_password=hash_password(password),
    )
    user.id = store.create_user(user)
    logger.info("Registered local account id=%d", user.id)
    return user


def authenticate_user(store: UserStore, username: str, password: str) -> User:
    """Verify a local username/password login with timing equalization.

    bcrypt always runs, whether or not the user exists:
      - unknown username or OAuth-only account: checked against _DUMMY_HASH
      - wrong password: checked against the real hash

    Returns the User on success, raises InvalidCredentials on any failure.
    """
    user = store.get_by_username(username.strip())
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentials("bad username or password")
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials("bad username or password")
    return user


# ---------------------------------------------------------------------------
# Session token encode / decode
# ---------------------------------------------------------------------------


def create_session_token(user_id: int, secret_key: str, expire_seconds: int) -> str:
    """Encode a signed token holding the user id and an expiry."""
    expire = datetime.now(timezone.utc) + timedelta(seconds=expire_seconds)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, secret_key, algorithm=_ALGORITHM)


def decode_session_token(token: str, secret_key: str) -> int | None:
    """Return the user id carried by a token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[_ALGORITHM])
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        return None
