"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SecretShare happen here. No module should
call os.getenv() or os.environ.get() directly.

Settings are constructed once by the entry point (asgi.py or main.py) and
handed to api.main.create_app(). From there they live on app.state.settings;
route handlers and the session helpers read them off the request. Tests build
their own Settings(...) with explicit keyword overrides instead of mutating
the environment.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode (DEBUG=true) generates a random
      SECRET_KEY with a warning; production mode refuses to start without one.

Layer rule: core/ is the kernel. This module may not import from api/, web/
or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("secretshare.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'secretshare.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Field names map to upper-cased env vars: `secret_key` reads SECRET_KEY,
    `facebook_app_id` reads FACEBOOK_APP_ID, and so on.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the "not configured" sentinel; see validate_secret_key.
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_expire_seconds: int = 24 * 60 * 60

    # ------------------------------------------------------------------
    # OAuth providers (empty string means the provider is disabled)
    # ------------------------------------------------------------------

    google_client_id: str = ""
    google_client_secret: str = ""
    facebook_app_id: str = ""
    facebook_app_secret: str = ""

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive a restart.

        Production mode: refuse to start without SECRET_KEY. The key signs
            both the session token and the OAuth state cookie.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance for the entry points.

    Only asgi.py and main.py call this. Everything else receives the settings
    object explicitly (create_app argument, then app.state.settings).
    """
    return Settings()
