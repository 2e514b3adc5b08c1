#!/usr/bin/env python3
"""
sqlauth — Authenticate users and check grants against a relational store.

Usage:
  python main.py init
  python main.py adduser tim sausages --role dev --role admin
  python main.py grant-perm dev commit_code
  python main.py login tim sausages
  python main.py check tim --role dev
  python main.py check tim --perm commit_code --perm merge_pr

Environment variables (see core/config.py):
  SQLAUTH_DB_URL            Async SQLAlchemy URL (default sqlite+aiosqlite:///sqlauth.db)
  SQLAUTH_HASH_SCHEME       digest (default) or bcrypt
  SQLAUTH_HASH_ALGORITHM    hashlib name for the digest scheme (default sha512)
  SQLAUTH_AUTHENTICATE_QUERY / SQLAUTH_ROLES_QUERY / SQLAUTH_PERMISSIONS_QUERY

Exit status: 0 on success / granted, 1 on auth failure / not granted,
2 on usage errors.
"""

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from auth.errors import AuthError
from auth.hashing import strategy_for
from auth.models import Credentials, Principal
from auth.provider import SQLAuth
from core.config import Settings, get_settings
from db.schema import AuthStore


async def _login(settings: Settings, username: str, password: str) -> int:
    auth = SQLAuth.from_settings(settings)
    try:
        principal = await auth.authenticate(Credentials(username, password))
    finally:
        await auth.close()
    print(f"  Authenticated {principal.username}.")
    return 0


async def _check(settings: Settings, username: str, roles: list[str], perms: list[str]) -> int:
    # The store is trusted here: `check` answers for an existing account
    # without re-authenticating, the same way a service would for a principal
    # it received over the wire.
    auth = SQLAuth.from_settings(settings)
    principal = Principal(username)
    try:
        granted = True
        if roles:
            granted = await auth.has_all_roles(principal, roles)
        if granted and perms:
            granted = await auth.has_all_permissions(principal, perms)
    finally:
        await auth.close()
    wanted = ", ".join([f"role:{r}" for r in roles] + [f"perm:{p}" for p in perms])
    print(f"  {username}: {wanted} -> {'granted' if granted else 'denied'}")
    return 0 if granted else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sqlauth",
        description="Authenticate users and check role/permission grants against a SQL store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init
  python main.py adduser tim sausages --role dev
  python main.py login tim sausages
  SQLAUTH_DB_URL=postgresql+asyncpg://u:pw@host/db python main.py check tim --perm commit_code
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("init", help="Create the default users / user_roles / roles_perms tables")

    p_add = sub.add_parser("adduser", help="Create a user with a hashed password")
    p_add.add_argument("username")
    p_add.add_argument("password")
    p_add.add_argument("--role", action="append", default=[], metavar="ROLE", help="Grant a role (repeatable)")

    p_perm = sub.add_parser("grant-perm", help="Grant a permission to a role")
    p_perm.add_argument("role")
    p_perm.add_argument("perm")

    p_login = sub.add_parser("login", help="Verify a username/password pair")
    p_login.add_argument("username")
    p_login.add_argument("password")

    p_check = sub.add_parser("check", help="Check that a user holds every listed role/permission")
    p_check.add_argument("username")
    p_check.add_argument("--role", action="append", default=[], metavar="ROLE")
    p_check.add_argument("--perm", action="append", default=[], metavar="PERM")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 2

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        if args.command in ("init", "adduser", "grant-perm"):
            store = AuthStore(settings.db_url)
            try:
                if args.command == "adduser":
                    strategy = strategy_for(settings.hash_scheme, settings.hash_algorithm)
                    store.create_user(args.username, args.password, strategy=strategy, roles=args.role)
                    print(f"  Created {args.username}.")
                elif args.command == "grant-perm":
                    store.grant_permission(args.role, args.perm)
                    print(f"  Granted {args.perm} to role {args.role}.")
                else:
                    print("  Schema ready.")
            finally:
                store.close()
            return 0

        if args.command == "login":
            return asyncio.run(_login(settings, args.username, args.password))

        if not args.role and not args.perm:
            p_check.error("at least one --role or --perm is required")
        return asyncio.run(_check(settings, args.username, args.role, args.perm))

    except AuthError as e:
        print(f"  [!] {e.code}: {e}", file=sys.stderr)
        return 1
    except IntegrityError:
        print("  [!] Already exists.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
