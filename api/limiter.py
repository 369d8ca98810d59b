"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to attach it to app.state and configure it) and by
web/routes.py (to apply @limiter.limit() to the login and register forms).

A single shared instance means every route shares one in-memory counter
store. configure_limiter() copies the relevant settings in at app creation;
login_rate_limit is passed to @limiter.limit() as a callable so the limit
string is read at request time rather than at import.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import Settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

_login_limit = "10/minute"


def configure_limiter(settings: Settings) -> None:
    global _login_limit
    _login_limit = settings.login_rate_limit
    limiter.enabled = settings.rate_limit_enabled


def login_rate_limit() -> str:
    return _login_limit
