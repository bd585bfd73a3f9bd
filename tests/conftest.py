"""
tests/conftest.py -- Shared fixtures for Unpacking tests.

This module provides:
  - settings: a Settings object with fixed secrets (no .env needed)
  - engine: an isolated named shared-memory SQLite database with the schema
  - hasher / tokens: auth services built from the fixed settings
  - users / authors / terms / snippets: stores over the test engine

Design: Named shared-memory SQLite URIs (not plain :memory:) are used
because FastAPI's TestClient runs sync handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The uuid suffix keeps every test on its own database.

DEBUG must be set before any core import so a stray get_settings() call
generates secrets instead of raising.
"""

from __future__ import annotations

import base64
import os
from collections.abc import Generator
from uuid import uuid4

# Set DEBUG before core/ is imported anywhere.
os.environ.setdefault("DEBUG", "true")

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from auth.passwords import PasswordHasher
from auth.tokens import TokenService
from core.config import Settings
from db.authors import AuthorStore
from db.engine import apply_schema, create_db_engine
from db.snippets import SnippetStore
from db.terms import TermStore
from db.users import UserStore

TEST_SALT = base64.b64encode(b"unpacking-test-salt").decode("ascii")
TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


def make_engine() -> Engine:
    """Fresh named shared-memory SQLite engine with every table created.

    StaticPool pins the pool explicitly; left to itself SQLAlchemy infers
    one from mode=memory and warns about it.
    """
    url = f"sqlite:///file:test_{uuid4().hex}?mode=memory&cache=shared&uri=true"
    engine = create_db_engine(url, poolclass=StaticPool)
    apply_schema(engine)
    return engine


@pytest.fixture
def settings() -> Settings:
    return Settings(
        debug=True,
        jwt_secret=TEST_SECRET,
        hasher_salt=TEST_SALT,
        admin_email="admin@example.com",
        admin_password="admin-password",
    )


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_engine()
    yield eng
    eng.dispose()


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(settings.hasher_salt)


@pytest.fixture
def tokens(settings: Settings) -> TokenService:
    return TokenService(settings.jwt_secret, settings.token_expire_seconds)


@pytest.fixture
def users(engine: Engine, hasher: PasswordHasher, settings: Settings) -> UserStore:
    return UserStore(engine, hasher, settings)


@pytest.fixture
def authors(engine: Engine) -> AuthorStore:
    return AuthorStore(engine)


@pytest.fixture
def terms(engine: Engine) -> TermStore:
    return TermStore(engine)


@pytest.fixture
def snippets(engine: Engine, authors: AuthorStore) -> SnippetStore:
    return SnippetStore(engine, authors)
