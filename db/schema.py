"""
db/schema.py -- Default auth schema and a synchronous seeding repository.

The default queries in core/config.py read these three tables. Deployments
with their own schema point the queries elsewhere and never touch this
module; it exists for bootstrapping (CLI `init` / `adduser`) and tests.

Pattern: Repository (same shape as a SQLAlchemy Core store). AuthStore owns
the writes; the async read path lives in db/executor.py.

Security:
  All statements use bound parameters. No f-strings in SQL.

Sync vs async URLs:
  AuthStore runs on a plain Engine, so an async driver suffix in the URL
  (sqlite+aiosqlite, postgresql+asyncpg) is mapped back to the backend's
  default sync driver. Both halves can share one SQLAUTH_DB_URL.

Schema:
  users        username (unique), password, password_salt
  user_roles   (username, role)
  roles_perms  (role, perm)
"""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import Column, MetaData, String, Table, Text, UniqueConstraint, create_engine, event
from sqlalchemy.engine import Engine, make_url

from auth.hashing import BcryptHashStrategy, DefaultHashStrategy, HashStrategy

logger = logging.getLogger("sqlauth.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("username", String(255), primary_key=True),
    Column("password", Text, nullable=False),
    Column("password_salt", Text),  # NULL for unsalted or bcrypt rows
)

user_roles = Table(
    "user_roles",
    metadata,
    Column("username", String(255), nullable=False),
    Column("role", String(255), nullable=False),
    UniqueConstraint("username", "role"),
)

roles_perms = Table(
    "roles_perms",
    metadata,
    Column("role", String(255), nullable=False),
    Column("perm", String(255), nullable=False),
    UniqueConstraint("role", "perm"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def sync_url(db_url: str) -> str:
    """Strip an async driver from a URL: sqlite+aiosqlite:///x.db -> sqlite:///x.db."""
    url = make_url(db_url)
    return url.set(drivername=url.get_backend_name()).render_as_string(hide_password=False)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so seeding does not block concurrent readers."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def new_salt() -> str:
    """Random 64-char hex salt for DefaultHashStrategy rows."""
    return secrets.token_hex(32).upper()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Repository for users, role grants and role permissions.

    Usage:
        store = AuthStore("sqlite:///auth.db")
        store.create_user("tim", "sausages", roles=["dev"])
        store.grant_permission("dev", "commit_code")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        db_url = sync_url(db_url)
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_user(
        self,
        username: str,
        password: str,
        salt: str | None = None,
        strategy: HashStrategy | None = None,
        roles: list[str] | tuple[str, ...] = (),
    ) -> None:
        """Insert a user whose stored hash is computed by `strategy`.

        DefaultHashStrategy rows get a fresh random salt unless one is given.
        BcryptHashStrategy rows store the full bcrypt hash and no salt.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        strategy = strategy or DefaultHashStrategy()
        if isinstance(strategy, BcryptHashStrategy):
            salt = None
            hashed = strategy.new_hash(password)
        else:
            if salt is None:
                salt = new_salt()
            hashed = strategy.compute_hash(password, salt)
        with self.engine.connect() as conn:
            conn.execute(users.insert().values(username=username, password=hashed, password_salt=salt))
            for role in roles:
                conn.execute(user_roles.insert().values(username=username, role=role))
            conn.commit()
        logger.info("Created user %r with roles %s", username, list(roles))

    def insert_raw_user(self, username: str, password: str, salt: str | None = None) -> None:
        """Insert a row with a precomputed hash, bypassing any strategy."""
        with self.engine.connect() as conn:
            conn.execute(users.insert().values(username=username, password=password, password_salt=salt))
            conn.commit()

    def grant_role(self, username: str, role: str) -> None:
        with self.engine.connect() as conn:
            conn.execute(user_roles.insert().values(username=username, role=role))
            conn.commit()

    def grant_permission(self, role: str, perm: str) -> None:
        with self.engine.connect() as conn:
            conn.execute(roles_perms.insert().values(role=role, perm=perm))
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()
