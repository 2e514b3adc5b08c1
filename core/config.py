"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads for sqlauth happen here. No module should
call os.getenv() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads SQLAUTH_* environment variables
      and an optional .env file. Field names map to env var names with the
      prefix (e.g. db_url -> SQLAUTH_DB_URL).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Each query template must bind the username parameter, and the
      hash settings must name something the hashing layer can build.

Settings are read-only after construction (frozen=True). The provider built
from them is shared across concurrent authentications.

Layer rule: core/ is the kernel. This module may not import from auth/ or db/.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sqlauth.config")

USERNAME_PARAM = "username"

DEFAULT_AUTHENTICATE_QUERY = "SELECT password, password_salt FROM users WHERE username = :username"
DEFAULT_ROLES_QUERY = "SELECT role FROM user_roles WHERE username = :username"
DEFAULT_PERMISSIONS_QUERY = (
    "SELECT rp.perm FROM roles_perms rp, user_roles ur " "WHERE ur.username = :username AND ur.role = rp.role"
)


class Settings(BaseSettings):
    """Provider settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in tests
    without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SQLAUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    db_url: str = "sqlite+aiosqlite:///sqlauth.db"

    # ------------------------------------------------------------------
    # Queries -- one named bind parameter, :username
    # ------------------------------------------------------------------

    authenticate_query: str = DEFAULT_AUTHENTICATE_QUERY
    roles_query: str = DEFAULT_ROLES_QUERY
    permissions_query: str = DEFAULT_PERMISSIONS_QUERY

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    # "digest": hex(hashlib digest of salt + password), see hash_algorithm.
    # "bcrypt": stored column holds a full bcrypt hash.
    hash_scheme: Literal["digest", "bcrypt"] = "digest"
    hash_algorithm: str = "sha512"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_queries(self) -> "Settings":
        """Reject query templates that never bind :username.

        A template without the bind would run unparameterized and return
        rows for every user -- the verifier would then report an ambiguous
        identity on every login instead of failing at startup.
        """
        for field in ("authenticate_query", "roles_query", "permissions_query"):
            value = getattr(self, field)
            if f":{USERNAME_PARAM}" not in value:
                raise ValueError(f"{field} must bind :{USERNAME_PARAM} (got {value!r})")
        if self.hash_scheme == "bcrypt" and self.hash_algorithm != "sha512":
            logger.warning("hash_algorithm=%s is ignored when hash_scheme=bcrypt", self.hash_algorithm)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
