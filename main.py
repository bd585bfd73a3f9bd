#!/usr/bin/env python3
"""
Unpacking -- snippet, term and author catalogue backend.

Usage:
  python main.py init                      create missing tables and the admin account
  python main.py token EMAIL PASSWORD      log in and print an access token
  python main.py graph                     print the term graph as JSON
  python main.py stats                     print snippet counts per media as JSON

Environment variables (or .env):
  DATABASE_URL    SQLAlchemy URL. Defaults to a SQLite file next to the code.
  JWT_SECRET      Token signing key, >= 32 chars.
  HASHER_SALT     Base64 Argon2 salt shared by every password hash.
  ADMIN_EMAIL     Email of the bootstrap admin account.
  ADMIN_PASSWORD  Password of the bootstrap admin account.
  DEBUG=true      Generate missing secrets instead of refusing to start.
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from auth.passwords import PasswordHasher
from auth.permissions import login
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.errors import AppError
from db.authors import AuthorStore
from db.engine import apply_schema, create_db_engine
from db.snippets import SnippetStore
from db.terms import TermStore
from db.users import UserStore

logger = logging.getLogger("unpacking.cli")


@dataclass
class Services:
    """Everything a request handler needs, wired from one Settings object."""

    engine: Engine
    tokens: TokenService
    users: UserStore
    authors: AuthorStore
    terms: TermStore
    snippets: SnippetStore

    def close(self) -> None:
        self.engine.dispose()


def build_services(settings: Settings, engine: Optional[Engine] = None) -> Services:
    engine = engine or create_db_engine(settings.database_url, pool_size=settings.db_pool_size)
    hasher = PasswordHasher(settings.hasher_salt)
    author_store = AuthorStore(engine)
    return Services(
        engine=engine,
        tokens=TokenService(settings.jwt_secret, settings.token_expire_seconds),
        users=UserStore(engine, hasher, settings),
        authors=author_store,
        terms=TermStore(engine),
        snippets=SnippetStore(engine, author_store),
    )


def _cmd_init(services: Services, args: argparse.Namespace) -> int:
    apply_schema(services.engine)
    created = services.users.ensure_admin()
    print("Admin account created." if created else "Admin account already present.")
    return 0


def _cmd_token(services: Services, args: argparse.Namespace) -> int:
    grant = login(services.users, services.tokens, args.email, args.password)
    print(json.dumps({"id": str(grant.id), "token": grant.token, "role": grant.role.value}))
    return 0


def _cmd_graph(services: Services, args: argparse.Namespace) -> int:
    print(json.dumps(asdict(services.terms.select_graph())))
    return 0


def _cmd_stats(services: Services, args: argparse.Namespace) -> int:
    stats = services.snippets.media_stats()
    print(json.dumps({"media": [{"media": s.media.value, "count": s.count} for s in stats]}))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="unpacking", description="Unpacking backend maintenance commands.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Create missing tables and the admin account").set_defaults(func=_cmd_init)
    token = sub.add_parser("token", help="Log in and print an access token")
    token.add_argument("email")
    token.add_argument("password")
    token.set_defaults(func=_cmd_token)
    sub.add_parser("graph", help="Print the term graph as JSON").set_defaults(func=_cmd_graph)
    sub.add_parser("stats", help="Print snippet counts per media").set_defaults(func=_cmd_stats)
    return parser


def main(argv: Optional[list[str]] = None, services: Optional[Services] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    owned = services is None
    services = services or build_services(settings)
    try:
        return args.func(services, args)
    except AppError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    finally:
        if owned:
            services.close()


if __name__ == "__main__":
    sys.exit(main())
