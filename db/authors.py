"""
db/authors.py -- Repository for Author rows.

Authors are independent entities referenced by snippets through
authors_snippets. insert_within() lets SnippetStore create free-text authors
on its own open transaction so the author rows and the junction rows that
reference them commit (or roll back) together.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.engine import Connection, Engine

from core.errors import translate_db_errors
from core.models import Author
from db.engine import authors, authors_snippets, now_iso


def non_empty(names: Iterable[str]) -> list[str]:
    """Drop empty free-text entries, keeping order."""
    return [name for name in names if name]


class AuthorStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @translate_db_errors
    def insert(self, names: Iterable[str]) -> list[UUID]:
        """Create one author per non-empty name. Returns the new ids in order."""
        with self.engine.begin() as conn:
            return self.insert_within(conn, names)

    def insert_within(self, conn: Connection, names: Iterable[str]) -> list[UUID]:
        """Bulk insert on a caller-owned transaction. Empty names are skipped."""
        now = now_iso()
        new_authors = [Author(name=name) for name in non_empty(names)]
        if new_authors:
            conn.execute(
                authors.insert(),
                [{"id": a.id, "name": a.name, "created_at": now, "updated_at": now} for a in new_authors],
            )
        return [a.id for a in new_authors]

    @translate_db_errors
    def update(self, author_id: UUID, name: str) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                authors.update().where(authors.c.id == author_id).values(name=name, updated_at=now_iso())
            )
        return result.rowcount

    @translate_db_errors
    def delete(self, author_id: UUID) -> int:
        """Remove the author's snippet associations, then the author."""
        with self.engine.begin() as conn:
            conn.execute(authors_snippets.delete().where(authors_snippets.c.author_id == author_id))
            result = conn.execute(authors.delete().where(authors.c.id == author_id))
        return result.rowcount

    @translate_db_errors
    def select(self, author_id: UUID) -> Author:
        with self.engine.connect() as conn:
            row = conn.execute(authors.select().where(authors.c.id == author_id)).one()
        return _row_to_author(row)

    @translate_db_errors
    def select_all(self) -> list[Author]:
        """Return all authors ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(authors.select().order_by(authors.c.name, authors.c.id)).fetchall()
        return [_row_to_author(r) for r in rows]


def _row_to_author(row) -> Author:
    return Author(id=row.id, name=row.name, created_at=row.created_at, updated_at=row.updated_at)
