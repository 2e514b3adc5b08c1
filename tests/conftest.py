"""
tests/conftest.py -- Shared fixtures for sqlauth tests.

This module provides:
  - FakeExecutor: in-process QueryExecutor that records every call and counts
    releases, for unit tests of the verifier and checker
  - seeded_db: a file-backed SQLite store seeded through AuthStore, plus an
    aiosqlite SQLAlchemyQueryExecutor reading the same file
  - isolated_settings: clears SQLAUTH_* env vars and the get_settings() cache

Design: the store is a file in tmp_path rather than :memory: because the
sync seeding engine and the async executor open separate connections, and a
plain in-memory SQLite DB is private to one connection.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Generator

import pytest

from core.config import get_settings
from db.executor import SQLAlchemyQueryExecutor
from db.schema import AuthStore

# ---------------------------------------------------------------------------
# Fake executor
# ---------------------------------------------------------------------------


class FakeExecutor:
    """QueryExecutor stub.

    rows:  iterable handed to the consumer (a generator lets a test detect
           reads past a given row).
    error: exception raised instead of producing rows.
    """

    def __init__(self, rows=(), error: BaseException | None = None) -> None:
        self.rows = rows
        self.error = error
        self.calls: list[tuple[str, dict]] = []
        self.released = 0

    async def execute(self, query, params, consumer=None):
        self.calls.append((query, dict(params)))
        try:
            if self.error is not None:
                raise self.error
            if consumer is None:
                return [tuple(r) for r in self.rows]
            return consumer(iter(self.rows))
        finally:
            self.released += 1


@pytest.fixture
def fake_executor() -> type[FakeExecutor]:
    return FakeExecutor


# ---------------------------------------------------------------------------
# Seeded store
# ---------------------------------------------------------------------------


@pytest.fixture
async def seeded_db(tmp_path) -> AsyncGenerator[tuple[AuthStore, SQLAlchemyQueryExecutor], None]:
    """Yield (store, executor) over a store seeded with:

    users:  tim / sausages  (roles: dev, admin)
            ann / hunter2   (roles: dev)
    perms:  dev -> commit_code, merge_pr
            admin -> delete_repo
    """
    db_file = tmp_path / "auth.db"
    store = AuthStore(f"sqlite:///{db_file}")
    store.create_user("tim", "sausages", roles=["dev", "admin"])
    store.create_user("ann", "hunter2", roles=["dev"])
    store.grant_permission("dev", "commit_code")
    store.grant_permission("dev", "merge_pr")
    store.grant_permission("admin", "delete_repo")

    executor = SQLAlchemyQueryExecutor(f"sqlite+aiosqlite:///{db_file}")
    yield store, executor

    await executor.dispose()
    store.close()


# ---------------------------------------------------------------------------
# Settings isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """Strip SQLAUTH_* env vars, run from tmp_path (no stray .env), reset the cache."""
    for key in list(os.environ):
        if key.startswith("SQLAUTH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
