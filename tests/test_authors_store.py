"""Unit tests for db/authors.py."""

from uuid import uuid4

import pytest

from core.errors import BadRequest
from core.models import Media, Snippet
from db.authors import AuthorStore, non_empty
from db.snippets import SnippetStore


def test_non_empty_keeps_order() -> None:
    assert non_empty(["", "b", "a", ""]) == ["b", "a"]


class TestAuthorStore:
    def test_bulk_insert_returns_ids_in_order(self, authors: AuthorStore) -> None:
        ids = authors.insert(["Ursula", "", "Italo"])
        assert len(ids) == 2
        assert [authors.select(i).name for i in ids] == ["Ursula", "Italo"]

    def test_insert_nothing(self, authors: AuthorStore) -> None:
        assert authors.insert([""]) == []
        assert authors.select_all() == []

    def test_select_all_by_name(self, authors: AuthorStore) -> None:
        authors.insert(["Zadie", "Anne", "Miguel"])
        assert [a.name for a in authors.select_all()] == ["Anne", "Miguel", "Zadie"]

    def test_update(self, authors: AuthorStore) -> None:
        (author_id,) = authors.insert(["Typo"])
        assert authors.update(author_id, "Fixed") == 1
        assert authors.select(author_id).name == "Fixed"

    def test_delete_removes_snippet_links(self, authors: AuthorStore, snippets: SnippetStore) -> None:
        (author_id,) = authors.insert(["Solo"])
        snippet_id = snippets.insert(Snippet(text="Quote", media=Media.Website), [], [author_id])

        assert authors.delete(author_id) == 1

        assert snippets.select_authors(snippet_id) == []
        with pytest.raises(BadRequest):
            authors.select(author_id)

    def test_select_unknown_not_found(self, authors: AuthorStore) -> None:
        with pytest.raises(BadRequest) as exc_info:
            authors.select(uuid4())
        assert exc_info.value.message == "Not found"
