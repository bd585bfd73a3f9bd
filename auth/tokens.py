"""
auth/tokens.py -- JWT issuance and validation.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       exactly three claims: sub (user id as a UUID string), role (the Role
       literal) and exp (unix seconds, 30 minutes after issuance by default).

  validate() raises Unauthorized on any failure -- bad signature, expired,
       malformed, or claims that do not parse into Claims. authenticate() is
       the soft variant: it never raises and wraps the outcome in an
       AuthResult, which is what the permission combinators consume.

  The secret and expiry are injected through the constructor; nothing here
  reads configuration at call time.

Layer rule: no imports from api/ or db/.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from uuid import UUID

from jose import JWTError, jwt

from core.errors import AppError, Unauthorized
from core.models import Role

logger = logging.getLogger("unpacking.auth")

_ALGORITHM = "HS256"

DEFAULT_EXPIRE_SECONDS = 30 * 60


@dataclass(frozen=True)
class Claims:
    sub: UUID
    role: Role
    exp: int

    def to_payload(self) -> dict:
        return {"sub": str(self.sub), "role": self.role.value, "exp": self.exp}

    @classmethod
    def from_payload(cls, payload: dict) -> "Claims":
        """Build Claims from a decoded JWT payload. Raises ValueError/KeyError/TypeError."""
        return cls(sub=UUID(payload["sub"]), role=Role(payload["role"]), exp=int(payload["exp"]))


@dataclass(frozen=True)
class AuthResult:
    """Outcome of authenticating a request: either claims or an error."""

    claims: Claims | None = None
    error: AppError | None = None

    @classmethod
    def ok(cls, claims: Claims) -> "AuthResult":
        return cls(claims=claims)

    @classmethod
    def failed(cls, error: AppError | None = None) -> "AuthResult":
        return cls(error=error or Unauthorized())

    @property
    def is_ok(self) -> bool:
        return self.claims is not None


@dataclass(frozen=True)
class TokenGrant:
    """Response of a successful credential login."""

    id: UUID
    token: str
    role: Role


class TokenService:
    """Sign and verify access tokens.

    Usage:
        tokens = TokenService(settings.jwt_secret, settings.token_expire_seconds)
        token = tokens.issue(user_id, Role.Admin)
        claims = tokens.validate(token)
    """

    def __init__(self, secret: str, expire_seconds: int = DEFAULT_EXPIRE_SECONDS) -> None:
        self._secret = secret
        self._expire_seconds = expire_seconds

    def issue(self, user_id: UUID, role: Role, now: int | None = None) -> str:
        """Encode a signed JWT for user_id expiring expire_seconds after now."""
        issued_at = int(time.time()) if now is None else now
        claims = Claims(sub=user_id, role=role, exp=issued_at + self._expire_seconds)
        return jwt.encode(claims.to_payload(), self._secret, algorithm=_ALGORITHM)

    def validate(self, token: str) -> Claims:
        """Verify signature and expiry and return the claims. Raises Unauthorized."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
            return Claims.from_payload(payload)
        except (JWTError, KeyError, TypeError, ValueError) as exc:
            logger.info("Rejected access token: %s", exc)
            raise Unauthorized() from exc

    def authenticate(self, token: str | None) -> AuthResult:
        """Soft variant of validate(): a missing or invalid token is a failed result."""
        if not token:
            return AuthResult.failed()
        try:
            return AuthResult.ok(self.validate(token))
        except Unauthorized as exc:
            return AuthResult.failed(exc)
