"""
auth/hashing.py -- Pluggable password hashing strategies.

A HashStrategy turns a password (+ optional salt) into a comparable string
and knows where the stored hash and salt sit in an authentication row.
Strategies are pure: no I/O, no mutable state, safe to share between tasks.

Two implementations:
  DefaultHashStrategy: uppercase hex of digest(salt + password). The digest
       is any hashlib algorithm (SHA-512 by default), resolved once at
       construction so an unavailable algorithm is a startup failure
       [UnsupportedAlgorithm], never a per-login one.

  BcryptHashStrategy: the stored column already holds a full bcrypt hash.
       bcrypt embeds its salt in the first 29 characters, so salt() reads it
       back from the same column and compute_hash() re-runs hashpw() with
       it. Same (password, salt) always yields the same string.

Layer rule: no imports from db/ or core/.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import bcrypt

from auth.errors import InvalidCredentials, UnsupportedAlgorithm

DEFAULT_ALGORITHM = "sha512"

# "$2b$" + 2-digit cost + "$" + 22 chars of encoded salt
_BCRYPT_SALT_LEN = 29


@runtime_checkable
class HashStrategy(Protocol):
    def compute_hash(self, password: str, salt: str | None) -> str: ...

    def stored_hash(self, row: Sequence) -> str: ...

    def salt(self, row: Sequence) -> str | None: ...


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def bytes_to_hex(data: bytes) -> str:
    """Encode bytes as uppercase hex, most-significant nibble first."""
    return data.hex().upper()


def _check_algorithm(algorithm: str) -> None:
    try:
        hashlib.new(algorithm)
    except (ValueError, TypeError) as exc:
        raise UnsupportedAlgorithm(algorithm) from exc


def compute_hash(password: str, salt: str | None, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Return bytes_to_hex(digest(salt + password)) using UTF-8 encoding.

    A None salt is treated as the empty string (unsalted scheme).
    """
    _check_algorithm(algorithm)
    return _digest_hex(password, salt, algorithm)


def _digest_hex(password: str, salt: str | None, algorithm: str) -> str:
    concat = (salt or "") + password
    md = hashlib.new(algorithm)
    md.update(concat.encode("utf-8"))
    return bytes_to_hex(md.digest())


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class DefaultHashStrategy:
    """Salted digest strategy reading (hash, salt) from columns (0, 1)."""

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM, hash_column: int = 0, salt_column: int = 1) -> None:
        _check_algorithm(algorithm)
        self._algorithm = algorithm
        self._hash_column = hash_column
        self._salt_column = salt_column

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def compute_hash(self, password: str, salt: str | None) -> str:
        return _digest_hex(password, salt, self._algorithm)

    def stored_hash(self, row: Sequence) -> str:
        return row[self._hash_column]

    def salt(self, row: Sequence) -> str | None:
        if len(row) <= self._salt_column:
            return None
        return row[self._salt_column]

    def __repr__(self) -> str:
        return f"DefaultHashStrategy(algorithm={self._algorithm!r})"


class BcryptHashStrategy:
    """bcrypt strategy: hash and salt both come from one stored column."""

    def __init__(self, hash_column: int = 0) -> None:
        self._hash_column = hash_column

    def compute_hash(self, password: str, salt: str | None) -> str:
        # No usable salt means the row holds no bcrypt hash: nothing can match.
        if not salt:
            raise InvalidCredentials()
        try:
            return bcrypt.hashpw(password.encode("utf-8"), salt.encode("utf-8")).decode("utf-8")
        except ValueError as exc:
            # Stored value is not a bcrypt hash (e.g. legacy digest row).
            raise InvalidCredentials() from exc

    def stored_hash(self, row: Sequence) -> str:
        return row[self._hash_column]

    def salt(self, row: Sequence) -> str | None:
        stored = row[self._hash_column]
        if isinstance(stored, (bytes, bytearray)):
            stored = stored.decode("utf-8", errors="replace")
        if not isinstance(stored, str) or len(stored) < _BCRYPT_SALT_LEN:
            return None
        return stored[:_BCRYPT_SALT_LEN]

    @staticmethod
    def new_hash(password: str) -> str:
        """Hash a password with a fresh random salt, for seeding stores."""
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def strategy_for(scheme: str, algorithm: str = DEFAULT_ALGORITHM) -> HashStrategy:
    """Build the strategy named by Settings.hash_scheme."""
    if scheme == "bcrypt":
        return BcryptHashStrategy()
    if scheme == "digest":
        return DefaultHashStrategy(algorithm)
    raise UnsupportedAlgorithm(scheme)
