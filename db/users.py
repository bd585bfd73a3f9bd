"""
db/users.py -- Repository for User and Password rows.

Pattern: Repository + Data Mapper (same as the other stores in db/).

Rules:
  - insert() writes the user row and its password row in one transaction.
    The hash is computed before the transaction opens, so a hashing failure
    writes nothing.
  - delete() is a soft delete: is_deleted flips to true, the password row is
    left alone. select()/select_all()/authenticate() ignore deleted users.
  - email is UNIQUE at the storage level; a duplicate surfaces as
    BadRequest("Already exists") via translate_db_errors.

ensure_admin() is the startup bootstrap. It tolerates a concurrent first run
by treating "Already exists" on insert as success.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Engine

from auth.passwords import PasswordHasher
from core.config import Settings
from core.errors import ALREADY_EXISTS, BadRequest, translate_db_errors
from core.models import Role, User
from db.engine import now_iso, passwords, users

logger = logging.getLogger("unpacking.db")


class UserStore:
    """Repository for users and their passwords.

    Usage:
        store = UserStore(engine, PasswordHasher(settings.hasher_salt), settings)
        user_id = store.insert(User(name="Ada", email="ada@example.com"), "s3cret!")
        store.select(user_id)
        store.delete(user_id)
    """

    def __init__(self, engine: Engine, hasher: PasswordHasher, settings: Settings | None = None) -> None:
        self.engine = engine
        self._hasher = hasher
        self._settings = settings

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @translate_db_errors
    def insert(self, user: User, password: str) -> UUID:
        """Create a user with its password. Returns the user id."""
        password_hash = self._hasher.hash(password)
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                users.insert().values(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    role=user.role.value,
                    is_deleted=False,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.execute(
                passwords.insert().values(
                    user_id=user.id,
                    password=password_hash,
                    created_at=now,
                    updated_at=now,
                )
            )
        logger.info("Created user %s (%s)", user.id, user.role.value)
        return user.id

    @translate_db_errors
    def update(self, user_id: UUID, name: str, email: str, role: Role) -> int:
        """Replace name, email and role. Returns the number of rows updated."""
        with self.engine.begin() as conn:
            result = conn.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(name=name, email=email, role=role.value, updated_at=now_iso())
            )
        return result.rowcount

    @translate_db_errors
    def delete(self, user_id: UUID) -> int:
        """Soft delete: flag the user, keep the row and the password."""
        with self.engine.begin() as conn:
            result = conn.execute(
                users.update().where(users.c.id == user_id).values(is_deleted=True, updated_at=now_iso())
            )
        return result.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @translate_db_errors
    def select(self, user_id: UUID) -> User:
        """Fetch an active user. Raises BadRequest("Not found") otherwise."""
        with self.engine.connect() as conn:
            row = conn.execute(
                users.select().where((users.c.id == user_id) & (users.c.is_deleted.is_(False)))
            ).one()
        return _row_to_user(row)

    @translate_db_errors
    def select_all(self) -> list[User]:
        """Return all active users ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                users.select().where(users.c.is_deleted.is_(False)).order_by(users.c.name, users.c.id)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    @translate_db_errors
    def get_by_email(self, email: str, include_deleted: bool = False) -> User | None:
        query = users.select().where(users.c.email == email)
        if not include_deleted:
            query = query.where(users.c.is_deleted.is_(False))
        with self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row is not None else None

    @translate_db_errors
    def authenticate(self, email: str, password: str) -> tuple[UUID, Role]:
        """Check credentials of an active user. Returns (user_id, role).

        Raises BadRequest("Not found") for an unknown email and
        AuthenticationError (also "Not found") for a wrong password.
        """
        with self.engine.connect() as conn:
            user_id, role = conn.execute(
                select(users.c.id, users.c.role).where(
                    (users.c.email == email) & (users.c.is_deleted.is_(False))
                )
            ).one()
            password_hash = conn.execute(
                select(passwords.c.password).where(passwords.c.user_id == user_id)
            ).scalar_one()
        self._hasher.verify(password, password_hash)
        return user_id, Role(role)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def ensure_admin(self) -> bool:
        """Create the configured admin account unless it already exists.

        Returns True if this call created the account. A deleted account with
        the admin email still counts as present.
        """
        if self._settings is None:
            raise ValueError("ensure_admin() needs a UserStore built with settings")
        email = self._settings.admin_email
        if self.get_by_email(email, include_deleted=True) is not None:
            logger.info("Admin account %s already present", email)
            return False
        try:
            self.insert(User(name="Admin", email=email, role=Role.Admin), self._settings.admin_password)
        except BadRequest as exc:
            if exc.message != ALREADY_EXISTS:
                raise
            logger.info("Admin account %s created concurrently", email)
            return False
        logger.info("Admin account %s created", email)
        return True


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=Role(row.role),
        is_deleted=bool(row.is_deleted),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
