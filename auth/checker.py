"""
auth/checker.py -- Role and permission membership checks.

Roles and permissions share one mechanism: run a query bound to the
principal's username and scan the single-column rows it returns. Only the
query text and the label used in log lines differ.

  has_one: True at the first row equal to `name`; remaining rows are never
           compared. False when rows run out or there are none.

  has_all: copy `names` into a working set and discard each row value from
           it; True as soon as the set empties, False if rows run out first.

Both scans stop iterating at the deciding row, so later rows are never
compared. The executor may already have fetched them (SQLAlchemy buffers
the result), so the early exit saves scan work, not network I/O. Row order affects
only how early a scan stops, never its result.

Empty `names` for has_all is vacuously True and returns without a query
(see DESIGN.md, open question on empty sets).

A backend failure is raised as BackendUnavailable -- it is never folded into
a False answer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from auth.models import Principal
from core.config import USERNAME_PARAM

if TYPE_CHECKING:
    from db.executor import QueryExecutor

logger = logging.getLogger("sqlauth.auth")


def _contains(rows: Iterable[Sequence], name: str) -> bool:
    for row in rows:
        if row[0] == name:
            return True
    return False


def _covers(rows: Iterable[Sequence], wanted: set[str]) -> bool:
    for row in rows:
        wanted.discard(row[0])
        if not wanted:
            return True
    return False


class AuthorizationChecker:
    """Answers membership questions for an already-authenticated Principal."""

    def __init__(self, executor: QueryExecutor, roles_query: str, permissions_query: str) -> None:
        self._executor = executor
        self._roles_query = roles_query
        self._permissions_query = permissions_query

    @property
    def roles_query(self) -> str:
        return self._roles_query

    @property
    def permissions_query(self) -> str:
        return self._permissions_query

    # ------------------------------------------------------------------
    # Generic checks
    # ------------------------------------------------------------------

    async def has_one(self, principal: Principal, name: str, query: str, label: str = "grant") -> bool:
        found = await self._executor.execute(
            query, {USERNAME_PARAM: principal.username}, lambda rows: _contains(rows, name)
        )
        logger.debug("%s %r for %r: %s", label, name, principal.username, found)
        return found

    async def has_all(self, principal: Principal, names: Iterable[str], query: str, label: str = "grant") -> bool:
        wanted = set(names)
        if not wanted:
            return True
        found = await self._executor.execute(
            query, {USERNAME_PARAM: principal.username}, lambda rows: _covers(rows, wanted)
        )
        if not found:
            logger.debug("%ss %s missing for %r", label, sorted(wanted), principal.username)
        return found

    # ------------------------------------------------------------------
    # Role / permission shorthands
    # ------------------------------------------------------------------

    async def has_role(self, principal: Principal, role: str) -> bool:
        return await self.has_one(principal, role, self._roles_query, "role")

    async def has_permission(self, principal: Principal, permission: str) -> bool:
        return await self.has_one(principal, permission, self._permissions_query, "permission")

    async def has_all_roles(self, principal: Principal, roles: Iterable[str]) -> bool:
        return await self.has_all(principal, roles, self._roles_query, "role")

    async def has_all_permissions(self, principal: Principal, permissions: Iterable[str]) -> bool:
        return await self.has_all(principal, permissions, self._permissions_query, "permission")
