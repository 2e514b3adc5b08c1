"""
auth/verifier.py -- Username/password verification against the store.

One authenticate() call issues at most one query and decides the outcome
from the row count:

  0 rows  -> InvalidCredentials  (unknown user)
  1 row   -> hash the supplied password with the row's salt and compare;
             match -> Principal, mismatch -> InvalidCredentials
  >1 rows -> AmbiguousIdentity   (store integrity problem, not a client error)

Unknown user and wrong password raise the same exception with the same
message so callers cannot enumerate usernames [enumeration resistance].

The comparison uses hmac.compare_digest so the time taken does not reveal
how many leading characters matched.

Layer rule: depends on the db.executor.QueryExecutor protocol, never on a
concrete driver.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from auth.errors import AmbiguousIdentity, InvalidCredentials, MissingField
from auth.hashing import HashStrategy
from auth.models import Credentials, HashRecord, Principal
from core.config import USERNAME_PARAM

if TYPE_CHECKING:
    from db.executor import QueryExecutor

logger = logging.getLogger("sqlauth.auth")


class CredentialVerifier:
    """Authenticates credentials with a fixed query and hash strategy.

    Holds only read-only configuration; one instance serves any number of
    concurrent authenticate() calls.
    """

    def __init__(self, executor: QueryExecutor, query: str, strategy: HashStrategy) -> None:
        self._executor = executor
        self._query = query
        self._strategy = strategy

    @property
    def query(self) -> str:
        return self._query

    @property
    def strategy(self) -> HashStrategy:
        return self._strategy

    async def authenticate(self, credentials: Credentials) -> Principal:
        username = credentials.username
        # An empty username can never become a Principal.
        if not username:
            raise MissingField("username")
        password = credentials.password
        if password is None:
            raise MissingField("password")

        rows = await self._executor.execute(self._query, {USERNAME_PARAM: username}, list)

        if not rows:
            logger.info("Authentication failed for %r", username)
            raise InvalidCredentials()
        if len(rows) > 1:
            logger.warning("Authentication query returned multiple rows for %r", username)
            raise AmbiguousIdentity(username, len(rows))

        record = self._hash_record(rows[0])
        stored = _as_text(record.stored_hash)
        salt = record.salt if record.salt is None else _as_text(record.salt)
        if not stored or (record.salt is not None and salt is None):
            # NULL, empty or non-text columns: no password can match them.
            logger.warning("Unusable stored hash or salt for %r", username)
            raise InvalidCredentials()
        hashed = self._strategy.compute_hash(password, salt)
        if not isinstance(hashed, str) or not hmac.compare_digest(stored.encode("utf-8"), hashed.encode("utf-8")):
            logger.info("Authentication failed for %r", username)
            raise InvalidCredentials()

        logger.debug("Authenticated %r", username)
        return Principal(username)

    def _hash_record(self, row: Sequence) -> HashRecord:
        return HashRecord(stored_hash=self._strategy.stored_hash(row), salt=self._strategy.salt(row))


def _as_text(value: object) -> str | None:
    """Stored hash as str; BLOB columns are decoded, anything else is unusable."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None
