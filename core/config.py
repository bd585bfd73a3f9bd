"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Unpacking happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead,
then pass the values the component needs to its constructor.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET, hasher_salt -> HASHER_SALT).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Dev mode generates missing secrets with a warning, production
      mode refuses to start without them.

Security notes:
  JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy.

  HASHER_SALT is a process-wide salt for the Argon2 password hasher. It is
  base64 text; auth/passwords.py validates the decoded length.

Layer rule: core/ is the kernel. This module may not import from api/, auth/
or db/.
"""

import base64
import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("unpacking.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'unpacking.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file, as long as DEBUG=true supplies the
    generated secrets.
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
    host: str = "localhost"
    port: int = 3000

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    db_pool_size: int = 10

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured" on both secrets.
    jwt_secret: str = ""
    hasher_salt: str = ""
    token_expire_seconds: int = 30 * 60

    # ------------------------------------------------------------------
    # Admin bootstrap
    # ------------------------------------------------------------------

    admin_email: str = "admin@localhost"
    admin_password: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the secret policy.

        Dev mode (DEBUG=true): missing JWT_SECRET, HASHER_SALT and
            ADMIN_PASSWORD are generated with a warning. Tokens and password
            hashes will not survive a restart.

        Production mode: refuse to start if any of them is missing.

        Both modes: JWT_SECRET must be at least 32 characters and the admin
            password at least 6 characters.
        """
        missing = [
            name
            for name, value in (
                ("JWT_SECRET", self.jwt_secret),
                ("HASHER_SALT", self.hasher_salt),
                ("ADMIN_PASSWORD", self.admin_password),
            )
            if not value
        ]
        if missing and not self.debug:
            raise ValueError(
                f"{', '.join(missing)} required in production mode. "
                "Set them in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        if not self.jwt_secret:
            self.jwt_secret = secrets.token_hex(32)
            logger.warning("Using auto-generated JWT_SECRET. Tokens will not persist across restarts.")
        if not self.hasher_salt:
            self.hasher_salt = base64.b64encode(secrets.token_bytes(16)).decode("ascii").rstrip("=")
            logger.warning("Using auto-generated HASHER_SALT. Stored password hashes will not verify after restart.")
        if not self.admin_password:
            self.admin_password = secrets.token_urlsafe(12)
            logger.warning("Using auto-generated ADMIN_PASSWORD for %s.", self.admin_email)
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        if len(self.admin_password) < 6:
            raise ValueError("ADMIN_PASSWORD must be at least 6 characters.")
        return self

    @property
    def app_address(self) -> str:
        return f"{self.host}:{self.port}"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables, or build Settings(...) directly
    and pass it to the components under test.
    """
    return Settings()
