"""
tests/test_api_boundary.py -- FastAPI boundary adapter and request payloads.

A minimal FastAPI app is assembled here the way an embedding router would:
TokenService on app.state.tokens, get_auth_result as a dependency, and the
permission checks inside the handlers. Running through the ASGI stack checks
that AppError subclasses come out with the right status codes and that
internal details never reach the response body.

Coverage:
  - 401 without / with a bad bearer token
  - 403 for a User on an admin route, 200 for an Admin
  - self-or-admin on a path-supplied user id
  - BadRequest("Already exists") from a real store surfaces as 400
  - unexpected exceptions become a generic 500
  - case-insensitive bearer scheme
  - pydantic payload length rules and the bodies feeding their stores
"""

from __future__ import annotations

from collections.abc import Generator
from uuid import UUID, uuid4

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from pydantic import ValidationError

from api.dependencies import get_auth_result, register_error_handlers
from api.models import (
    CreateAuthor,
    CreateSnippet,
    CreateTerm,
    CreateToken,
    CreateUser,
    SnippetQuery,
    UpdateAuthor,
    UpdateSnippet,
    UpdateTerm,
    UpdateUser,
)
from auth.permissions import require_admin, require_self_or_admin
from auth.tokens import AuthResult, TokenService
from core.errors import InternalServerError
from core.models import Role, Term, TermRelated, User
from db.authors import AuthorStore
from db.terms import TermStore
from db.users import UserStore


def _build_app(tokens: TokenService, users: UserStore) -> FastAPI:
    app = FastAPI()
    app.state.tokens = tokens
    register_error_handlers(app)

    @app.get("/admin")
    def admin_only(auth: AuthResult = Depends(get_auth_result)) -> dict:
        return {"sub": str(require_admin(auth))}

    @app.get("/users/{user_id}")
    def read_user(user_id: UUID, auth: AuthResult = Depends(get_auth_result)) -> dict:
        require_self_or_admin(auth, user_id)
        return {"name": users.select(user_id).name}

    @app.post("/users")
    def create_user(body: CreateUser, auth: AuthResult = Depends(get_auth_result)) -> dict:
        require_admin(auth)
        return {"id": str(users.insert(body.to_domain(), body.password))}

    @app.get("/boom")
    def boom() -> dict:
        raise InternalServerError()

    @app.get("/crash")
    def crash() -> dict:
        raise RuntimeError("secret connection string")

    return app


@pytest.fixture
def client(tokens: TokenService, users: UserStore) -> Generator[TestClient, None, None]:
    with TestClient(_build_app(tokens, users), raise_server_exceptions=False) as c:
        yield c


def _bearer(tokens: TokenService, user_id: UUID, role: Role) -> dict:
    return {"Authorization": f"Bearer {tokens.issue(user_id, role)}"}


class TestAuthStatus:
    def test_missing_token_is_401(self, client: TestClient) -> None:
        resp = client.get("/admin")
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Unauthorized"}

    def test_bad_token_is_401(self, client: TestClient) -> None:
        resp = client.get("/admin", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401

    def test_user_on_admin_route_is_403(self, client: TestClient, tokens: TokenService) -> None:
        resp = client.get("/admin", headers=_bearer(tokens, uuid4(), Role.User))
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Forbidden"}

    def test_admin_on_admin_route_is_200(self, client: TestClient, tokens: TokenService) -> None:
        admin_id = uuid4()
        resp = client.get("/admin", headers=_bearer(tokens, admin_id, Role.Admin))
        assert resp.status_code == 200
        assert resp.json() == {"sub": str(admin_id)}

    def test_scheme_name_is_case_insensitive(self, client: TestClient, tokens: TokenService) -> None:
        admin_id = uuid4()
        token = tokens.issue(admin_id, Role.Admin)
        for scheme in ("bearer", "BEARER"):
            resp = client.get("/admin", headers={"Authorization": f"{scheme} {token}"})
            assert resp.status_code == 200
            assert resp.json() == {"sub": str(admin_id)}

    def test_other_scheme_is_401(self, client: TestClient, tokens: TokenService) -> None:
        token = tokens.issue(uuid4(), Role.Admin)
        resp = client.get("/admin", headers={"Authorization": f"Basic {token}"})
        assert resp.status_code == 401


class TestSelfOrAdmin:
    def test_self_can_read(self, client: TestClient, tokens: TokenService, users: UserStore) -> None:
        user_id = users.insert(User(name="Ann", email="ann@example.com"), "password1")
        resp = client.get(f"/users/{user_id}", headers=_bearer(tokens, user_id, Role.User))
        assert resp.status_code == 200
        assert resp.json() == {"name": "Ann"}

    def test_other_user_forbidden(self, client: TestClient, tokens: TokenService) -> None:
        resp = client.get(f"/users/{uuid4()}", headers=_bearer(tokens, uuid4(), Role.User))
        assert resp.status_code == 403

    def test_admin_reading_missing_user_is_400_not_found(self, client: TestClient, tokens: TokenService) -> None:
        resp = client.get(f"/users/{uuid4()}", headers=_bearer(tokens, uuid4(), Role.Admin))
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Not found"}


class TestErrorMapping:
    def test_duplicate_email_is_400_already_exists(self, client: TestClient, tokens: TokenService) -> None:
        headers = _bearer(tokens, uuid4(), Role.Admin)
        body = {"name": "Foo", "role": "User", "email": "foo@foo.com", "password": "password1"}
        assert client.post("/users", json=body, headers=headers).status_code == 200
        resp = client.post("/users", json=body, headers=headers)
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Already exists"}

    def test_internal_error_is_generic_500(self, client: TestClient) -> None:
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal Server Error"}

    def test_unexpected_exception_hides_details(self, client: TestClient) -> None:
        resp = client.get("/crash")
        assert resp.status_code == 500
        assert "secret" not in resp.text


class TestPayloads:
    def test_one_character_name_is_valid(self) -> None:
        UpdateUser(name="😱", role=Role.User, email="123456")

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UpdateUser(name="", role=Role.User, email="a@b.com")

    def test_five_character_email_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UpdateUser(name="Ann", role=Role.User, email="12345")

    def test_six_character_password_valid_five_rejected(self) -> None:
        CreateUser(name="Ann", role=Role.User, email="a@b.co", password="123456")
        with pytest.raises(ValidationError):
            CreateUser(name="Ann", role=Role.User, email="a@b.co", password="12345")

    def test_token_request_rules(self) -> None:
        with pytest.raises(ValidationError):
            CreateToken(email="a@b.co", password="short")

    def test_snippet_text_required(self) -> None:
        with pytest.raises(ValidationError):
            CreateSnippet(text="", media="Book")

    def test_snippet_defaults_and_domain_mapping(self) -> None:
        body = CreateSnippet(text="Quote", media="Twitter", new_authors=["", "Bob"])
        snippet = body.to_domain()
        assert snippet.media.value == "Twitter"
        assert snippet.link is None
        assert body.terms == []

    def test_unknown_media_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateSnippet(text="Quote", media="Podcast")

    def test_query_page_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            SnippetQuery(page=0)

    def test_empty_term_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateTerm(name="")
        with pytest.raises(ValidationError):
            UpdateTerm(name="", related=[])

    def test_empty_author_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateAuthor(name="")
        with pytest.raises(ValidationError):
            UpdateAuthor(name="")

    def test_term_body_feeds_store(self, terms: TermStore) -> None:
        parent = terms.insert(CreateTerm(name="Parent").to_domain())
        body = CreateTerm(name="Child", related=[str(parent)])
        assert body.related == [parent]

        child = terms.insert(body.to_domain(), body.related)

        assert terms.select(child).name == "Child"
        assert terms.select_related() == [TermRelated(term_id=child, related_id=parent)]

    def test_update_term_body_replaces_edges(self, terms: TermStore) -> None:
        a = terms.insert(Term(name="A"))
        b = terms.insert(Term(name="B"), [a])
        body = UpdateTerm(name="B2")
        terms.update(b, body.name, body.related)
        assert terms.select_related() == []

    def test_author_bodies_feed_store(self, authors: AuthorStore) -> None:
        author = CreateAuthor(name="Ursula").to_domain()
        (author_id,) = authors.insert([author.name])
        authors.update(author_id, UpdateAuthor(name="Le Guin").name)
        assert authors.select(author_id).name == "Le Guin"

    def test_update_snippet_shares_create_rules(self) -> None:
        body = UpdateSnippet(text="Edited", media="Blog", terms=[str(uuid4())])
        assert body.to_domain().text == "Edited"
        assert len(body.terms) == 1
        with pytest.raises(ValidationError):
            UpdateSnippet(text="", media="Blog")
