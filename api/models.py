"""
api/models.py -- Request payloads for the Unpacking boundary.

These Pydantic v2 models carry the field-level validation rules a caller must
apply before invoking a store. They are separate from the dataclasses in
core/models.py, which own the internal domain representation; to_domain()
methods map between the two.

Length rules:
  name >= 1 char, email >= 6 chars, password >= 6 chars, snippet text >= 1 char.
Lengths count characters, not bytes, so a single emoji is a valid name.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from core.models import Author, Media, Role, Snippet, Term, User

MIN_NAME_LENGTH = 1
MIN_EMAIL_LENGTH = 6
MIN_PASSWORD_LENGTH = 6
MIN_TEXT_LENGTH = 1

# ---------------------------------------------------------------------------
# Users and auth
# ---------------------------------------------------------------------------


class CreateUser(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH)
    role: Role
    email: str = Field(min_length=MIN_EMAIL_LENGTH)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    def to_domain(self) -> User:
        return User(name=self.name, email=self.email, role=self.role)


class UpdateUser(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH)
    role: Role
    email: str = Field(min_length=MIN_EMAIL_LENGTH)


class CreateToken(BaseModel):
    email: str = Field(min_length=MIN_EMAIL_LENGTH)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


# ---------------------------------------------------------------------------
# Authors and terms
# ---------------------------------------------------------------------------


class CreateAuthor(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH)

    def to_domain(self) -> Author:
        return Author(name=self.name)


class UpdateAuthor(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH)


class CreateTerm(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH)
    related: list[UUID] = Field(default_factory=list)

    def to_domain(self) -> Term:
        return Term(name=self.name)


class UpdateTerm(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH)
    related: list[UUID] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Snippets
# ---------------------------------------------------------------------------


class CreateSnippet(BaseModel):
    """Body for creating a snippet.

    existing_authors are ids of Author rows; new_authors are free-text names
    that become new Author rows. Empty names are accepted here and dropped by
    the store.
    """

    text: str = Field(min_length=MIN_TEXT_LENGTH)
    media: Media
    link: Optional[str] = None
    existing_authors: list[UUID] = Field(default_factory=list)
    new_authors: list[str] = Field(default_factory=list)
    terms: list[UUID] = Field(default_factory=list)

    def to_domain(self) -> Snippet:
        return Snippet(text=self.text, media=self.media, link=self.link)


class UpdateSnippet(CreateSnippet):
    pass


class SnippetQuery(BaseModel):
    term_id: Optional[UUID] = None
    page: int = Field(default=1, ge=1)
