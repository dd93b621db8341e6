"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for movie-session happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl_ms -> SESSION_TTL_MS). Type coercion and validation
      are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. A session TTL of zero or less would issue
      sessions that are already expired, so it is a hard startup failure.

Layer rule: core/ is the kernel. This module may not import from auth/ or
storage/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("moviesession.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'storage' / 'moviesession.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
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

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    # Client-local durable storage. One namespace per client install.
    session_db_url: str = _DEFAULT_DB_URL
    client_namespace: str = "default"
    # Default 1 hour, in milliseconds to match the persisted expiry format.
    session_ttl_ms: int = 60 * 60 * 1000
    # Simulated backend latency for login.
    login_delay_seconds: float = 0.8
    # Where the guard sends the user after logout or expiry.
    login_route: str = "/login"

    # ------------------------------------------------------------------
    # Catalog (OMDb)
    # ------------------------------------------------------------------

    omdb_base_url: str = "https://www.omdbapi.com/"
    omdb_api_key: str = ""
    request_timeout: float = 10.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_timing(self) -> "Settings":
        """Reject timing values that would break the expiry invariants.

        session_ttl_ms must be positive: a session's expiry is always strictly
        in the future at creation time.

        login_delay_seconds must not be negative (asyncio.sleep accepts it, but
        it is always a configuration mistake).
        """
        if self.session_ttl_ms <= 0:
            raise ValueError("SESSION_TTL_MS must be a positive number of milliseconds.")
        if self.login_delay_seconds < 0:
            raise ValueError("LOGIN_DELAY_SECONDS must not be negative.")
        if not self.omdb_api_key:
            logger.debug("OMDB_API_KEY is not set -- catalog requests will be rejected upstream")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
