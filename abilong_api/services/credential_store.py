"""
Credential store — persistence for User records.

All reads and writes of the users table go through this class. It knows
nothing about passwords beyond storing whatever hash it is handed; hashing is
the account service's job.

Uniqueness:
  Email and username are protected by UNIQUE constraints. A write that
  violates one raises IntegrityError at flush time, which is translated here
  into ConstraintViolationError. That is the only race-safe uniqueness check;
  the account service's lookups before a write are a courtesy, not a guarantee.

  After a ConstraintViolationError the session must be rolled back before it
  is used again (get_db does this for every failed request).
"""

import logging
import uuid
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from abilong_api.exceptions import ConstraintViolationError, UserNotFoundError
from abilong_api.models.user import User

logger = logging.getLogger(__name__)


class CredentialStore:
    """User persistence bound to one database session."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self._db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_by_username(
        self,
        username: str,
        exclude_id: uuid.UUID | None = None,
    ) -> User | None:
        """
        Look up a user by username.

        Args:
            username: The username to look for.
            exclude_id: If given, a user with this id is never returned. Used
                to ask "does anyone *else* hold this username?".
        """
        query = select(User).where(User.username == username)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await self._db.execute(query)
        return result.scalar_one_or_none()

    async def insert(self, user: User) -> User:
        """
        Persist a new user.

        Raises:
            ConstraintViolationError: If the email or username already exists.
        """
        self._db.add(user)
        await self._flush()
        return user

    async def update(self, user_id: uuid.UUID, fields: dict[str, Any]) -> User:
        """
        Apply a partial set of column values to an existing user.

        Raises:
            UserNotFoundError: If no user has this id.
            ConstraintViolationError: If the new email or username is taken.
        """
        user = await self.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        for field, value in fields.items():
            setattr(user, field, value)

        await self._flush()
        return user

    async def delete(self, user_id: uuid.UUID) -> None:
        """Delete a user by id. Deleting an absent id is not an error."""
        await self._db.execute(delete(User).where(User.id == user_id))

    async def list_all(self) -> list[User]:
        # The hash column is never loaded for listings
        result = await self._db.execute(
            select(User)
            .options(defer(User.password_hash))
            .order_by(User.created_at)
        )
        return list(result.scalars().all())

    async def _flush(self) -> None:
        try:
            await self._db.flush()
        except IntegrityError as exc:
            logger.warning("Unique constraint rejected user write: %s", exc.orig)
            raise ConstraintViolationError() from exc
