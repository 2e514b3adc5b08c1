"""
auth/provider.py -- SQLAuth, the single entry point callers hold.

Bundles one QueryExecutor with the three query templates and a hash
strategy, and exposes authenticate / has_* / from_buffer.

Configuration is fixed per instance. The with_* methods return a NEW
provider sharing the same executor rather than mutating this one, so a
provider can be handed to any number of concurrent tasks.

Usage:
    auth = SQLAuth.from_settings(get_settings())
    principal = await auth.authenticate(Credentials("tim", "sausages"))
    if await auth.has_role(principal, "dev"):
        ...
    await auth.close()
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from auth.checker import AuthorizationChecker
from auth.hashing import DefaultHashStrategy, HashStrategy, strategy_for
from auth.models import Credentials, Principal
from auth.serialization import principal_from_bytes, principal_to_bytes
from auth.verifier import CredentialVerifier
from core.config import DEFAULT_AUTHENTICATE_QUERY, DEFAULT_PERMISSIONS_QUERY, DEFAULT_ROLES_QUERY

if TYPE_CHECKING:
    from core.config import Settings
    from db.executor import QueryExecutor


class SQLAuth:
    def __init__(
        self,
        executor: QueryExecutor,
        authenticate_query: str = DEFAULT_AUTHENTICATE_QUERY,
        roles_query: str = DEFAULT_ROLES_QUERY,
        permissions_query: str = DEFAULT_PERMISSIONS_QUERY,
        strategy: HashStrategy | None = None,
    ) -> None:
        self.executor = executor
        self._verifier = CredentialVerifier(executor, authenticate_query, strategy or DefaultHashStrategy())
        self._checker = AuthorizationChecker(executor, roles_query, permissions_query)

    @classmethod
    def from_settings(cls, settings: Settings, executor: QueryExecutor | None = None) -> SQLAuth:
        """Build a provider from Settings; creates a SQLAlchemy executor if none is given."""
        # Strategy first: a bad algorithm must fail before any engine exists.
        strategy = strategy_for(settings.hash_scheme, settings.hash_algorithm)
        if executor is None:
            from db.executor import SQLAlchemyQueryExecutor

            executor = SQLAlchemyQueryExecutor(settings.db_url, echo=settings.debug)
        return cls(
            executor,
            authenticate_query=settings.authenticate_query,
            roles_query=settings.roles_query,
            permissions_query=settings.permissions_query,
            strategy=strategy,
        )

    # ------------------------------------------------------------------
    # Configuration (copy-on-write)
    # ------------------------------------------------------------------

    @property
    def authenticate_query(self) -> str:
        return self._verifier.query

    @property
    def roles_query(self) -> str:
        return self._checker.roles_query

    @property
    def permissions_query(self) -> str:
        return self._checker.permissions_query

    @property
    def strategy(self) -> HashStrategy:
        return self._verifier.strategy

    def _replace(self, **overrides) -> SQLAuth:
        config = {
            "authenticate_query": self.authenticate_query,
            "roles_query": self.roles_query,
            "permissions_query": self.permissions_query,
            "strategy": self.strategy,
        }
        config.update(overrides)
        return SQLAuth(self.executor, **config)

    def with_authentication_query(self, query: str) -> SQLAuth:
        return self._replace(authenticate_query=query)

    def with_roles_query(self, query: str) -> SQLAuth:
        return self._replace(roles_query=query)

    def with_permissions_query(self, query: str) -> SQLAuth:
        return self._replace(permissions_query=query)

    def with_hash_strategy(self, strategy: HashStrategy) -> SQLAuth:
        return self._replace(strategy=strategy)

    # ------------------------------------------------------------------
    # Authentication / authorization
    # ------------------------------------------------------------------

    async def authenticate(self, credentials: Credentials) -> Principal:
        return await self._verifier.authenticate(credentials)

    async def has_role(self, principal: Principal, role: str) -> bool:
        return await self._checker.has_role(principal, role)

    async def has_permission(self, principal: Principal, permission: str) -> bool:
        return await self._checker.has_permission(principal, permission)

    async def has_all_roles(self, principal: Principal, roles: Iterable[str]) -> bool:
        return await self._checker.has_all_roles(principal, roles)

    async def has_all_permissions(self, principal: Principal, permissions: Iterable[str]) -> bool:
        return await self._checker.has_all_permissions(principal, permissions)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @staticmethod
    def to_buffer(principal: Principal) -> bytes:
        return principal_to_bytes(principal)

    @staticmethod
    def from_buffer(data: bytes | bytearray | memoryview) -> Principal:
        return principal_from_bytes(data)

    async def close(self) -> None:
        dispose = getattr(self.executor, "dispose", None)
        if dispose is not None:
            await dispose()
