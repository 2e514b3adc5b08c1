"""
db/executor.py -- Async query execution with guaranteed connection release.

The auth core depends only on the QueryExecutor protocol: run one
parameterized query, hand the rows to a consumer, release the connection.
SQLAlchemyQueryExecutor is the shipped implementation, built on SQLAlchemy's
asyncio engine so any async driver works (aiosqlite, asyncpg, ...): swapping
SQLite for PostgreSQL is a connection string change.

Resource discipline:
  Each execute() call opens exactly one connection via `async with
  engine.connect()`. The consumer runs while the connection is open, and the
  connection is closed on every exit path -- rows consumed, query failure, or
  the consumer itself raising. Task cancellation unwinds through the same
  `async with` and still releases the connection.

  The result is buffered by the driver before the consumer runs: the consumer
  sees every row the query produced, and stopping early only skips scanning.

Error surface:
  SQLAlchemyError / OSError from connect or execute become BackendUnavailable
  (original chained as __cause__). Consumer exceptions are NOT wrapped: a
  consumer raising InvalidCredentials must reach the caller as-is.

No retries. Retry policy, if any, belongs to the caller or the pool.

Security: all queries go through text() with bound parameters.

Usage:
    executor = SQLAlchemyQueryExecutor("sqlite+aiosqlite:///auth.db")
    rows = await executor.execute("SELECT role FROM user_roles WHERE username = :username", {"username": "tim"})
    await executor.dispose()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, Protocol, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from auth.errors import BackendUnavailable

logger = logging.getLogger("sqlauth.db")

T = TypeVar("T")

Row = Sequence[Any]
RowConsumer = Callable[[Iterable[Row]], T]

# Errors that mean "the store could not answer", as opposed to consumer errors.
_BACKEND_ERRORS = (SQLAlchemyError, OSError)


class QueryExecutor(Protocol):
    """Contract the auth core requires from the data layer.

    execute() runs `query` bound with `params`. When `consumer` is given it
    is called with the row iterable while the connection is still held and
    its return value is returned; otherwise the rows are returned as a list.
    Implementations release the connection exactly once on every exit path
    and raise BackendUnavailable for connection or query failures.
    """

    async def execute(
        self, query: str, params: Mapping[str, Any], consumer: RowConsumer | None = None
    ) -> Any: ...


def _collect(rows: Iterable[Row]) -> list[tuple]:
    return [tuple(row) for row in rows]


class SQLAlchemyQueryExecutor:
    """QueryExecutor backed by a SQLAlchemy AsyncEngine."""

    def __init__(self, db_url: str, **engine_kwargs: Any) -> None:
        self.db_url = db_url
        # NullPool for SQLite: file connections are cheap and pooled aiosqlite
        # connections outlive the event loop that created them in tests.
        if "sqlite" in db_url:
            engine_kwargs.setdefault("poolclass", NullPool)
        self.engine: AsyncEngine = create_async_engine(db_url, **engine_kwargs)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[AsyncConnection]:
        try:
            conn = await self.engine.connect()
        except _BACKEND_ERRORS as exc:
            logger.error("Could not acquire connection for %s", self.engine.url.render_as_string(), exc_info=True)
            raise BackendUnavailable(f"connection failed: {exc.__class__.__name__}", exc) from exc
        try:
            yield conn
        finally:
            await conn.close()

    async def execute(self, query: str, params: Mapping[str, Any], consumer: RowConsumer | None = None) -> Any:
        async with self._connect() as conn:
            try:
                result = await conn.execute(text(query), dict(params))
            except _BACKEND_ERRORS as exc:
                logger.error("Query failed: %s", query, exc_info=True)
                raise BackendUnavailable(f"query failed: {exc.__class__.__name__}", exc) from exc
            if consumer is None:
                return _collect(result)
            return consumer(result)

    async def dispose(self) -> None:
        """Release every pooled connection. The executor is unusable afterwards."""
        await self.engine.dispose()
