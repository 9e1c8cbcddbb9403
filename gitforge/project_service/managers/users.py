"""User rows and the database-backed identity directory.

The project service never issues identities; it only resolves a caller id to
``{user_id, is_admin}``.  Users are created out-of-band (``gitforge user add``).
"""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gitforge.project_service.db.tables import User
from gitforge.project_service.models.project import UserIdentity


class DuplicateUserError(ValueError):
    """Raised when a user with the given username already exists."""


class UserNotFoundError(LookupError):
    """Raised when a caller id does not resolve to a user."""


@runtime_checkable
class IdentityDirectory(Protocol):
    """Resolves caller ids.  Raises ``UserNotFoundError`` for unknown ids."""

    async def get_user(self, user_id: str) -> UserIdentity: ...


class DatabaseIdentityDirectory:
    """Identity directory reading the ``users`` table.

    Every lookup goes to the database (``populate_existing``), so a revoked
    admin flag takes effect on the very next operation even when the same
    session already holds the user row.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_user(self, user_id: str) -> UserIdentity:
        user = await get_user(self._db, user_id)
        return UserIdentity(user_id=user.user_id, is_admin=user.is_admin)


async def create_user(
    db: AsyncSession,
    username: str,
    *,
    is_admin: bool = False,
    user_id: str | None = None,
) -> User:
    """Create a user.  Raises ``DuplicateUserError`` if the username is taken."""
    existing = await db.scalar(select(User.user_id).where(User.username == username))
    if existing is not None:
        raise DuplicateUserError(username)

    user = User(user_id=user_id or str(uuid.uuid4()), username=username, is_admin=is_admin)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateUserError(username) from None
    await db.refresh(user)
    return user


async def get_user(db: AsyncSession, user_id: str) -> User:
    """Get a user by ID.  Raises ``UserNotFoundError`` if missing."""
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFoundError(user_id)
    return user
