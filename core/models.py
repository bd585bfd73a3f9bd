"""
core/models.py -- Domain dataclasses and enums for Unpacking.

Pure data containers. Stores in db/ own persistence and every rule about how
these records relate to each other.

Enum encoding: Role and Media are str enums whose value is the variant name.
That literal is what the database column holds, so reordering the members
never changes stored data.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class Role(str, Enum):
    User = "User"
    Admin = "Admin"


class Media(str, Enum):
    Blog = "Blog"
    Book = "Book"
    News = "News"
    Twitter = "Twitter"
    Video = "Video"
    Website = "Website"


@dataclass
class User:
    """An account. Deleting a user only sets is_deleted; the row and its
    password stay in place.

    created_at / updated_at are ISO 8601 strings set by the store.
    """

    name: str
    email: str
    role: Role = Role.User
    id: UUID = field(default_factory=uuid4)
    is_deleted: bool = False
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Author:
    name: str
    id: UUID = field(default_factory=uuid4)
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Term:
    name: str
    id: UUID = field(default_factory=uuid4)
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class TermRelated:
    """Directed edge term_id -> related_id."""

    term_id: UUID
    related_id: UUID


@dataclass
class TermWithRelated:
    term: Term
    related: list[UUID] = field(default_factory=list)


@dataclass
class Snippet:
    text: str
    media: Media
    link: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class NamedRef:
    """(id, name) pair of a term or author attached to a snippet."""

    id: UUID
    name: str


@dataclass
class SnippetWithRelated:
    id: UUID
    text: str
    media: Media
    link: Optional[str]
    terms: list[NamedRef] = field(default_factory=list)
    authors: list[NamedRef] = field(default_factory=list)


@dataclass
class SnippetPage:
    pages: int
    snippets: list[SnippetWithRelated]


@dataclass(frozen=True)
class MediaCount:
    media: Media
    count: int


@dataclass
class TermGraph:
    """Term names plus edges expressed as positions in that list."""

    terms: list[str]
    nodes: list[tuple[int, int]]
