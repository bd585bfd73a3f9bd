"""
db/snippets.py -- Repository for Snippet rows and their term/author junctions.

Association rules:
  insert()  snippet row, terms_snippets rows, authors_snippets rows for the
            existing authors, then new Author rows for the non-empty free-text
            names followed by their authors_snippets rows.
  update()  snippet fields, then delete ALL junction rows of the snippet and
            reinsert from the given sets. A full replace, never a diff, so an
            update always rewrites the junctions even when nothing changed.
  delete()  junction rows first, then the snippet.
Each of these is one transaction.

Reads:
  search()  snippets newest first, each with its terms and authors collected
            from the junction tables and deduplicated by id. With a term
            filter only snippets tagged with that term are returned, and the
            terms collection holds the matched term only.
  count()   number of pages for a page size (ceiling division).
  media_stats()  snippet count per media value.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine

from core.errors import NOT_FOUND, BadRequest, translate_db_errors
from core.models import Media, MediaCount, NamedRef, Snippet, SnippetPage, SnippetWithRelated
from db.authors import AuthorStore
from db.engine import authors, authors_snippets, now_iso, snippets, terms, terms_snippets

PAGE_SIZE = 20


def page_count(total: int, page_size: int) -> int:
    """Ceiling of total / page_size, in integers."""
    return total // page_size + (1 if total % page_size else 0)


class SnippetStore:
    """Repository for snippets.

    Usage:
        store = SnippetStore(engine, AuthorStore(engine))
        snippet_id = store.insert(Snippet(text="...", media=Media.Book), [term_id], [author_id], ["Bob"])
        page = store.page(term_id=None, page=1)
    """

    def __init__(self, engine: Engine, author_store: AuthorStore) -> None:
        self.engine = engine
        self._authors = author_store

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @translate_db_errors
    def insert(
        self,
        snippet: Snippet,
        term_ids: Iterable[UUID] = (),
        existing_authors: Iterable[UUID] = (),
        new_authors: Iterable[str] = (),
    ) -> UUID:
        """Create a snippet with its term and author associations."""
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                snippets.insert().values(
                    id=snippet.id,
                    text=snippet.text,
                    media=snippet.media.value,
                    link=snippet.link,
                    created_at=now,
                    updated_at=now,
                )
            )
            self._link(conn, snippet.id, term_ids, existing_authors, new_authors)
        return snippet.id

    @translate_db_errors
    def update(
        self,
        snippet_id: UUID,
        text: str,
        media: Media,
        link: str | None,
        term_ids: Iterable[UUID] = (),
        existing_authors: Iterable[UUID] = (),
        new_authors: Iterable[str] = (),
    ) -> int:
        """Replace the snippet body and its full association sets.

        Raises BadRequest("Not found") if the snippet does not exist.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                snippets.update()
                .where(snippets.c.id == snippet_id)
                .values(text=text, media=media.value, link=link, updated_at=now_iso())
            )
            if result.rowcount == 0:
                raise BadRequest(NOT_FOUND)
            self._unlink(conn, snippet_id)
            self._link(conn, snippet_id, term_ids, existing_authors, new_authors)
        return result.rowcount

    @translate_db_errors
    def delete(self, snippet_id: UUID) -> int:
        """Delete the snippet's junction rows, then the snippet."""
        with self.engine.begin() as conn:
            self._unlink(conn, snippet_id)
            result = conn.execute(snippets.delete().where(snippets.c.id == snippet_id))
        return result.rowcount

    def _link(
        self,
        conn: Connection,
        snippet_id: UUID,
        term_ids: Iterable[UUID],
        existing_authors: Iterable[UUID],
        new_authors: Iterable[str],
    ) -> None:
        term_rows = [{"term_id": t, "snippet_id": snippet_id} for t in term_ids]
        if term_rows:
            conn.execute(terms_snippets.insert(), term_rows)
        author_ids = list(existing_authors)
        author_ids.extend(self._authors.insert_within(conn, new_authors))
        author_rows = [{"author_id": a, "snippet_id": snippet_id} for a in author_ids]
        if author_rows:
            conn.execute(authors_snippets.insert(), author_rows)

    @staticmethod
    def _unlink(conn: Connection, snippet_id: UUID) -> None:
        conn.execute(terms_snippets.delete().where(terms_snippets.c.snippet_id == snippet_id))
        conn.execute(authors_snippets.delete().where(authors_snippets.c.snippet_id == snippet_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @translate_db_errors
    def search(
        self,
        term_id: UUID | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[SnippetWithRelated]:
        """Snippets newest first with their terms and authors."""
        query = select(snippets).order_by(snippets.c.created_at.desc(), snippets.c.id)
        if term_id is not None:
            query = query.where(
                snippets.c.id.in_(select(terms_snippets.c.snippet_id).where(terms_snippets.c.term_id == term_id))
            )
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
            return _with_related(conn, rows, term_id)

    @translate_db_errors
    def select(self, snippet_id: UUID) -> SnippetWithRelated:
        """One snippet with all of its terms and authors."""
        with self.engine.connect() as conn:
            row = conn.execute(select(snippets).where(snippets.c.id == snippet_id)).one()
            return _with_related(conn, [row], None)[0]

    @translate_db_errors
    def select_terms(self, snippet_id: UUID) -> list[NamedRef]:
        with self.engine.connect() as conn:
            return _related_terms(conn, [snippet_id], None).get(snippet_id, [])

    @translate_db_errors
    def select_authors(self, snippet_id: UUID) -> list[NamedRef]:
        with self.engine.connect() as conn:
            return _related_authors(conn, [snippet_id]).get(snippet_id, [])

    @translate_db_errors
    def count(self, term_id: UUID | None = None, page_size: int = PAGE_SIZE) -> int:
        """Number of pages of page_size snippets, optionally for one term."""
        if page_size <= 0:
            raise BadRequest("page_size must be positive")
        if term_id is None:
            query = select(func.count()).select_from(snippets)
        else:
            query = (
                select(func.count())
                .select_from(snippets.join(terms_snippets, terms_snippets.c.snippet_id == snippets.c.id))
                .where(terms_snippets.c.term_id == term_id)
            )
        with self.engine.connect() as conn:
            total = conn.execute(query).scalar_one()
        return page_count(total, page_size)

    def page(self, term_id: UUID | None, page: int, page_size: int = PAGE_SIZE) -> SnippetPage:
        """The 1-based page of search() results plus the total page count."""
        if page < 1:
            raise BadRequest("page must be at least 1")
        pages = self.count(term_id, page_size)
        found = self.search(term_id, limit=page_size, offset=(page - 1) * page_size)
        return SnippetPage(pages=pages, snippets=found)

    @translate_db_errors
    def media_stats(self) -> list[MediaCount]:
        """Snippet count per media value present in the table."""
        query = select(snippets.c.media, func.count()).group_by(snippets.c.media).order_by(snippets.c.media)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [MediaCount(media=Media(media), count=count) for media, count in rows]


# ---------------------------------------------------------------------------
# Aggregation helpers
# ---------------------------------------------------------------------------


def _group_refs(rows) -> dict[UUID, list[NamedRef]]:
    """Group (snippet_id, id, name) rows per snippet, keeping each id once."""
    grouped: dict[UUID, list[NamedRef]] = {}
    seen: set[tuple[UUID, UUID]] = set()
    for snippet_id, ref_id, name in rows:
        if (snippet_id, ref_id) in seen:
            continue
        seen.add((snippet_id, ref_id))
        grouped.setdefault(snippet_id, []).append(NamedRef(id=ref_id, name=name))
    return grouped


def _related_terms(conn: Connection, snippet_ids: list[UUID], term_id: UUID | None) -> dict[UUID, list[NamedRef]]:
    query = (
        select(terms_snippets.c.snippet_id, terms.c.id, terms.c.name)
        .join(terms, terms.c.id == terms_snippets.c.term_id)
        .where(terms_snippets.c.snippet_id.in_(snippet_ids))
        .distinct()
        .order_by(terms.c.name, terms.c.id)
    )
    if term_id is not None:
        query = query.where(terms_snippets.c.term_id == term_id)
    return _group_refs(conn.execute(query).fetchall())


def _related_authors(conn: Connection, snippet_ids: list[UUID]) -> dict[UUID, list[NamedRef]]:
    query = (
        select(authors_snippets.c.snippet_id, authors.c.id, authors.c.name)
        .join(authors, authors.c.id == authors_snippets.c.author_id)
        .where(authors_snippets.c.snippet_id.in_(snippet_ids))
        .distinct()
        .order_by(authors.c.name, authors.c.id)
    )
    return _group_refs(conn.execute(query).fetchall())


def _with_related(conn: Connection, rows, term_id: UUID | None) -> list[SnippetWithRelated]:
    if not rows:
        return []
    ids = [row.id for row in rows]
    related_terms = _related_terms(conn, ids, term_id)
    related_authors = _related_authors(conn, ids)
    return [
        SnippetWithRelated(
            id=row.id,
            text=row.text,
            media=Media(row.media),
            link=row.link,
            terms=related_terms.get(row.id, []),
            authors=related_authors.get(row.id, []),
        )
        for row in rows
    ]
