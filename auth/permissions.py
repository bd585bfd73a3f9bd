"""
auth/permissions.py -- Permission checks over an AuthResult.

Each check either returns the authenticated subject or raises:
  Unauthorized -- the request carried no valid token
  Forbidden    -- the token is valid but the role/ownership rule fails

Admin always passes the self check, even when subject != target.

login() lives here too: it is the one operation that turns credentials into
an AuthResult-compatible token.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from auth.tokens import AuthResult, Claims, TokenGrant, TokenService
from core.errors import Forbidden, Unauthorized
from core.models import Role

if TYPE_CHECKING:
    from db.users import UserStore


def require_authenticated(result: AuthResult) -> Claims:
    if result.claims is None:
        raise result.error or Unauthorized()
    return result.claims


def require_admin(result: AuthResult) -> UUID:
    """Return the subject id if the token belongs to an Admin."""
    claims = require_authenticated(result)
    if claims.role != Role.Admin:
        raise Forbidden()
    return claims.sub


def require_self_or_admin(result: AuthResult, target_user_id: UUID) -> UUID:
    """Return the subject id if it is an Admin or the target user itself."""
    claims = require_authenticated(result)
    if claims.role == Role.Admin or claims.sub == target_user_id:
        return claims.sub
    raise Forbidden()


def login(users: UserStore, tokens: TokenService, email: str, password: str) -> TokenGrant:
    """Verify credentials and issue an access token.

    Unknown email, deleted account and wrong password all surface as the same
    BadRequest("Not found") raised by UserStore.authenticate().
    """
    user_id, role = users.authenticate(email, password)
    return TokenGrant(id=user_id, token=tokens.issue(user_id, role), role=role)
