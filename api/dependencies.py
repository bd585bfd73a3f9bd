"""
api/dependencies.py -- FastAPI glue between HTTP requests and the core.

get_auth_result() is a Depends() helper: it reads the bearer token and
returns an AuthResult without raising, so each handler picks its own
permission check (require_admin, require_self_or_admin, ...).

register_error_handlers() maps the AppError taxonomy onto HTTP responses.
BadRequest keeps its message ("Not found", "Already exists", ...); every
other category returns its generic message only. Details stay in the log.

Layer rule: this is the only module that imports fastapi. It expects the
application to store a TokenService on app.state.tokens.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from auth.tokens import AuthResult, TokenService
from core.errors import AppError, InternalServerError

logger = logging.getLogger("unpacking.api")


def bearer_token(request: Request) -> str | None:
    """Token from an Authorization header; the scheme name is case-insensitive."""
    header = request.headers.get("Authorization", "")
    if header[:7].lower() == "bearer ":
        return header[7:].strip() or None
    return None


def get_auth_result(request: Request) -> AuthResult:
    """Authenticate the request from its Authorization: Bearer header."""
    tokens: TokenService = request.app.state.tokens
    return tokens.authenticate(bearer_token(request))


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalServerError):
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    error = InternalServerError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
