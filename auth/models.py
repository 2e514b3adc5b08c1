"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). The verifier,
checker and serializer do the work; these types only own the shape.

Layer rule: no imports from db/ or core/.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Credentials:
    """A username/password pair submitted for one authentication call.

    Either field may be None when built from an untrusted mapping; the
    verifier rejects that before issuing any query. Never stored.
    """

    username: str | None
    password: str | None

    @classmethod
    def from_mapping(cls, info: Mapping) -> Credentials:
        return cls(username=info.get("username"), password=info.get("password"))

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password=***)"


@dataclass(frozen=True)
class Principal:
    """The authenticated identity.

    Created only by a successful authenticate() or by deserialization, and
    never mutated afterwards. Safe to share across tasks.
    """

    username: str

    # Principal identities can be carried across processes (see
    # auth/serialization.py), unlike credential material.
    is_clusterable = True

    def as_dict(self) -> dict:
        return {"username": self.username}


@dataclass(frozen=True)
class HashRecord:
    """Stored hash and salt read from the single authentication row.

    Built and consumed inside CredentialVerifier.authenticate(); never
    returned or persisted. salt is None for unsalted schemes.
    """

    stored_hash: str
    salt: str | None = None
