"""
db/engine.py -- Schema and engine construction for the Unpacking database.

Uses SQLAlchemy Core (not ORM) so the dataclasses in core/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Tables:
  users, passwords (1:1 keyed by user_id), authors, terms,
  terms_related (term_id, related_id), snippets,
  terms_snippets (term_id, snippet_id), authors_snippets (author_id, snippet_id)

Enum columns (users.role, snippets.media) hold the enum's string literal.
Timestamps are ISO 8601 UTC strings written by the stores.

apply_schema() creates missing tables. There is no migration runner: schema
changes beyond "create if absent" are applied out of band.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import Pool

logger = logging.getLogger("unpacking.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(254), nullable=False, unique=True),
    Column("role", String(16), nullable=False),  # Role literal: "User" | "Admin"
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

passwords = Table(
    "passwords",
    metadata,
    Column("user_id", Uuid, ForeignKey("users.id"), primary_key=True),
    Column("password", Text, nullable=False),  # Argon2 PHC string, never plaintext
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

authors = Table(
    "authors",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

terms = Table(
    "terms",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

terms_related = Table(
    "terms_related",
    metadata,
    Column("term_id", Uuid, ForeignKey("terms.id"), primary_key=True),
    Column("related_id", Uuid, ForeignKey("terms.id"), primary_key=True),
)

snippets = Table(
    "snippets",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("text", Text, nullable=False),
    Column("media", String(16), nullable=False),  # Media literal, e.g. "Book"
    Column("link", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

terms_snippets = Table(
    "terms_snippets",
    metadata,
    Column("term_id", Uuid, ForeignKey("terms.id"), primary_key=True),
    Column("snippet_id", Uuid, ForeignKey("snippets.id"), primary_key=True),
)

authors_snippets = Table(
    "authors_snippets",
    metadata,
    Column("author_id", Uuid, ForeignKey("authors.id"), primary_key=True),
    Column("snippet_id", Uuid, ForeignKey("snippets.id"), primary_key=True),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys is off by default in SQLite.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_db_engine(
    db_url: str,
    pool_size: int = 10,
    echo: bool = False,
    poolclass: type[Pool] | None = None,
) -> Engine:
    """Build the process-wide Engine (connection pool) for db_url.

    poolclass overrides the dialect's default pool. In-memory SQLite
    databases need StaticPool so every thread sees the same connection.
    """
    connect_args: dict = {}
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        # The ASGI server may hand the same pooled connection to different
        # worker threads.
        connect_args["check_same_thread"] = False
    else:
        kwargs["pool_size"] = pool_size
        kwargs["pool_pre_ping"] = True
    if poolclass is not None:
        kwargs["poolclass"] = poolclass
    engine = create_engine(db_url, connect_args=connect_args, echo=echo, **kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _configure_sqlite)
    return engine


def apply_schema(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    metadata.create_all(engine)
    logger.info("Schema applied (%d tables)", len(metadata.tables))
