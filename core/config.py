"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for CredKeep happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bcrypt_rounds -> BCRYPT_ROUNDS). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used for the DEBUG-conditional work factor
      rule: a cheap bcrypt cost is only accepted in dev mode.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("credkeep.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'credkeep.db'}"

# bcrypt accepts cost factors 4..31. Anything under 10 is too fast for
# production password storage.
_MIN_ROUNDS = 4
_MAX_ROUNDS = 31
_MIN_PRODUCTION_ROUNDS = 10


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
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    # Cost 12 is roughly 100-250ms per hash on commodity hardware. Keep it
    # stable within one deployment; existing digests carry their own cost.
    bcrypt_rounds: int = 12
    reset_password_bytes: int = 16
    # The reset route hands a new password to whoever asks for a username.
    # Off unless the deployment puts it behind its own delivery channel.
    password_reset_enabled: bool = False

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    # Absolute lifetime from creation. Activity does not extend it.
    session_ttl_seconds: int = 3600
    session_purge_interval_seconds: int = 300

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_policy(self) -> "Settings":
        """Reject settings that would weaken password storage or break sessions.

        Dev mode (DEBUG=true): any bcrypt cost in 4..31 is accepted so the
            test suite can hash with cost 4.

        Production mode: cost below 10 is a hard startup failure.
        """
        if not _MIN_ROUNDS <= self.bcrypt_rounds <= _MAX_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be between {_MIN_ROUNDS} and {_MAX_ROUNDS}.")
        if self.bcrypt_rounds < _MIN_PRODUCTION_ROUNDS:
            if not self.debug:
                raise ValueError(
                    f"BCRYPT_ROUNDS below {_MIN_PRODUCTION_ROUNDS} is only allowed in development mode. "
                    "Set DEBUG=true to use a low work factor."
                )
            logger.warning("WARNING: Using bcrypt cost %d. Password hashes are cheap to brute-force.", self.bcrypt_rounds)
        if self.session_ttl_seconds <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive.")
        if self.session_purge_interval_seconds <= 0:
            raise ValueError("SESSION_PURGE_INTERVAL_SECONDS must be positive.")
        if self.reset_password_bytes < 12:
            raise ValueError("RESET_PASSWORD_BYTES must be at least 12.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
