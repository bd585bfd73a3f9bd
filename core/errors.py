"""
core/errors.py -- Error taxonomy shared by every layer.

Hierarchy (status code in brackets):
    AppError
    +-- BadRequest [400]            validation, "Not found", "Already exists"
    |   +-- AuthenticationError     credential mismatch, reported as "Not found"
    +-- Unauthorized [401]          missing, invalid or expired token
    +-- Forbidden [403]             valid token, insufficient role/ownership
    +-- InternalServerError [500]   anything not otherwise classified
        +-- CryptoError             hasher misconfiguration

The message of a BadRequest is part of the contract observed by callers.
Every other category carries a fixed generic message; details go to the
server log, never to the boundary.

translate_db_errors is the single place where SQLAlchemy exceptions are
inspected and downgraded to BadRequest for the two recoverable cases.

Layer rule: no imports from api/, auth/ or db/.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError

logger = logging.getLogger("unpacking.db")

NOT_FOUND = "Not found"
ALREADY_EXISTS = "Already exists"

# SQLSTATE for unique_violation (PostgreSQL), exposed as .sqlstate by psycopg 3
# and .pgcode by psycopg2.
_PG_UNIQUE_VIOLATION = "23505"

F = TypeVar("F", bound=Callable)


class AppError(Exception):
    """Base class for every error surfaced to the caller of a core operation."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))


class BadRequest(AppError):
    status_code = 400
    default_message = "Bad Request"


class AuthenticationError(BadRequest):
    """Credentials did not verify. Reported like an unknown account."""

    default_message = NOT_FOUND


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class InternalServerError(AppError):
    status_code = 500
    default_message = "Internal Server Error"


class CryptoError(InternalServerError):
    """The configured hasher salt (or another crypto parameter) is unusable."""


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _PG_UNIQUE_VIOLATION:
        return True
    # sqlite3 reports both UNIQUE and PRIMARY KEY collisions this way
    return "UNIQUE constraint failed" in str(orig)


def classify_db_error(exc: SQLAlchemyError) -> AppError:
    """Map a storage exception to the public taxonomy and log it."""
    if isinstance(exc, NoResultFound):
        logger.info("Lookup returned no row: %s", exc)
        return BadRequest(NOT_FOUND)
    if isinstance(exc, IntegrityError) and _is_unique_violation(exc):
        logger.info("Unique constraint violated: %s", exc.orig)
        return BadRequest(ALREADY_EXISTS)
    logger.error("Database error: %r", exc, exc_info=exc)
    return InternalServerError()


def translate_db_errors(function: F) -> F:
    """Decorator: re-raise SQLAlchemy errors as AppError subclasses.

    AppError instances raised inside the wrapped call pass through untouched,
    so a store method may raise BadRequest itself.
    """

    @wraps(function)
    def wrapper(*args, **kwargs):
        try:
            return function(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise classify_db_error(exc) from exc

    return wrapper  # type: ignore[return-value]
