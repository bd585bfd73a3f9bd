"""
db/terms.py -- Repository for Term rows and the terms_related edge table.

terms_related stores directed edges (term_id -> related_id). A term owns its
outgoing edges: insert() creates them, update() replaces them wholesale
(delete all, reinsert), never diffing against the current set.

delete() removes every junction row that references the term -- outgoing
edges, incoming edges and terms_snippets rows -- before the term itself, so
no edge or tag is left pointing at a missing term.

select_graph() projects the edge table onto list positions of select_all(),
which is the shape a graph renderer consumes directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.engine import Connection, Engine

from core.errors import NOT_FOUND, BadRequest, translate_db_errors
from core.models import Term, TermGraph, TermRelated, TermWithRelated
from db.engine import now_iso, terms, terms_related, terms_snippets

logger = logging.getLogger("unpacking.db")


def _insert_edges(conn: Connection, term_id: UUID, related: Iterable[UUID]) -> None:
    rows = [{"term_id": term_id, "related_id": related_id} for related_id in related]
    if rows:
        conn.execute(terms_related.insert(), rows)


class TermStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @translate_db_errors
    def insert(self, term: Term, related: Iterable[UUID] = ()) -> UUID:
        """Create a term and its outgoing related edges in one transaction."""
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(terms.insert().values(id=term.id, name=term.name, created_at=now, updated_at=now))
            _insert_edges(conn, term.id, related)
        return term.id

    @translate_db_errors
    def update(self, term_id: UUID, name: str, related: Iterable[UUID] = ()) -> int:
        """Rename the term and replace its full set of outgoing edges.

        Raises BadRequest("Not found") if the term does not exist.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                terms.update().where(terms.c.id == term_id).values(name=name, updated_at=now_iso())
            )
            if result.rowcount == 0:
                raise BadRequest(NOT_FOUND)
            conn.execute(terms_related.delete().where(terms_related.c.term_id == term_id))
            _insert_edges(conn, term_id, related)
        return result.rowcount

    @translate_db_errors
    def delete(self, term_id: UUID) -> int:
        """Delete edges in both directions and snippet tags, then the term."""
        with self.engine.begin() as conn:
            conn.execute(
                terms_related.delete().where(
                    or_(terms_related.c.term_id == term_id, terms_related.c.related_id == term_id)
                )
            )
            conn.execute(terms_snippets.delete().where(terms_snippets.c.term_id == term_id))
            result = conn.execute(terms.delete().where(terms.c.id == term_id))
        return result.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @translate_db_errors
    def select(self, term_id: UUID) -> Term:
        with self.engine.connect() as conn:
            row = conn.execute(terms.select().where(terms.c.id == term_id)).one()
        return _row_to_term(row)

    @translate_db_errors
    def select_all(self) -> list[Term]:
        """Return all terms, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(terms.select().order_by(terms.c.created_at, terms.c.id)).fetchall()
        return [_row_to_term(r) for r in rows]

    @translate_db_errors
    def select_related(self) -> list[TermRelated]:
        with self.engine.connect() as conn:
            rows = conn.execute(terms_related.select()).fetchall()
        return [TermRelated(term_id=r.term_id, related_id=r.related_id) for r in rows]

    def select_all_with_related(self) -> list[TermWithRelated]:
        """Every term (oldest first) with the ids of its outgoing edges."""
        outgoing: dict[UUID, list[UUID]] = {}
        for edge in self.select_related():
            outgoing.setdefault(edge.term_id, []).append(edge.related_id)
        return [TermWithRelated(term=t, related=outgoing.get(t.id, [])) for t in self.select_all()]

    def select_graph(self) -> TermGraph:
        """Term names plus edges as (source index, target index) pairs.

        Indexes refer to positions in select_all(). The id -> index map is
        built once; each edge is then a pair of dict lookups.
        """
        all_terms = self.select_all()
        index = {term.id: position for position, term in enumerate(all_terms)}
        nodes: list[tuple[int, int]] = []
        for edge in self.select_related():
            source = index.get(edge.term_id)
            target = index.get(edge.related_id)
            if source is None or target is None:
                logger.warning("Skipping dangling term edge %s -> %s", edge.term_id, edge.related_id)
                continue
            nodes.append((source, target))
        return TermGraph(terms=[t.name for t in all_terms], nodes=nodes)


def _row_to_term(row) -> Term:
    return Term(id=row.id, name=row.name, created_at=row.created_at, updated_at=row.updated_at)
