"""
Account service — signup, login and account management business logic.

This module contains the core account logic, separated from HTTP concerns.
The router calls these methods and translates the results into HTTP
responses, so everything here can be tested without a web server.

Signup flow:
  1. Reject if any of first name, last name, email, username, password is missing
  2. Reject if the email is already registered, then if the username is taken
  3. Hash the password with Argon2id
  4. Insert the User (role EDITOR, active)
  5. Return the user and a JWT so they are immediately logged in

Login flow:
  1. Look up user by email (404 if absent)
  2. Reject inactive accounts before looking at the password
  3. Verify password against stored hash
  4. Return the user and a JWT

Security notes:
  - Passwords are hashed here, explicitly, before every write that carries
    one. The store never decides when to hash.
  - Hashing and verification run in a worker thread so a slow Argon2 round
    does not stall other requests on the event loop.
  - Login distinguishes "user not found" from "invalid credentials". That
    leaks whether an email is registered; it is the documented behaviour of
    this API and is kept as-is.
  - update_user accepts any field, including role and is_active, with no
    allow-list or authorization check.
"""

import logging
import uuid
from typing import Any

from starlette.concurrency import run_in_threadpool

from abilong_api.exceptions import (
    DuplicateEmailError,
    DuplicateUsernameError,
    IncorrectPasswordError,
    InactiveAccountError,
    InvalidCredentialsError,
    MissingFieldsError,
    UserNotFoundError,
)
from abilong_api.models.user import User, UserRole
from abilong_api.security import PasswordHasher, TokenIssuer
from abilong_api.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class AccountService:
    """Orchestrates account operations over the store, hasher and token issuer."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        token_issuer: TokenIssuer,
    ):
        self.store = store
        self.hasher = hasher
        self.token_issuer = token_issuer

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _hash(self, plain_password: str) -> str:
        return await run_in_threadpool(self.hasher.hash, plain_password)

    async def _verify(self, plain_password: str, hashed_password: str) -> bool:
        return await run_in_threadpool(
            self.hasher.verify, plain_password, hashed_password
        )

    def _issue_token(self, user: User) -> str:
        return self.token_issuer.issue(
            user_id=user.id,
            email=user.email,
            role=UserRole(user.role).value,
        )

    async def _get_or_404(self, user_id: uuid.UUID) -> User:
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    # -----------------------------------------------------------------------
    # Public (unauthenticated) flows
    # -----------------------------------------------------------------------

    async def signup(
        self,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
        username: str | None,
        password: str | None,
        **profile: Any,
    ) -> tuple[User, str]:
        """
        Register a new user.

        Args:
            first_name, last_name, email, username, password: Required.
            **profile: Remaining profile columns (age, gender,
                contact_number, address).

        Returns:
            Tuple of (User instance, JWT token string).

        Raises:
            MissingFieldsError: If any required field is absent or empty.
            DuplicateEmailError: If the email is already registered.
            DuplicateUsernameError: If the username is already taken.
            ConstraintViolationError: If a concurrent signup won the race.
        """
        if not all((first_name, last_name, email, username, password)):
            raise MissingFieldsError()

        # Email is checked before username, so a request where both are
        # taken reports the email conflict.
        if await self.store.find_by_email(email) is not None:
            logger.warning("Signup rejected: email already in use")
            raise DuplicateEmailError(email)
        if await self.store.find_by_username(username) is not None:
            logger.warning("Signup rejected: username %r already in use", username)
            raise DuplicateUsernameError(username)

        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            username=username,
            password_hash=await self._hash(password),
            role=UserRole.EDITOR,
            is_active=True,
            **profile,
        )
        await self.store.insert(user)

        logger.info("User %s signed up", user.id)
        return user, self._issue_token(user)

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """
        Authenticate a user and return a JWT token.

        Raises:
            UserNotFoundError: If no user has this email.
            InactiveAccountError: If the account is disabled. Checked before
                the password, so inactive accounts never learn whether the
                password was right.
            InvalidCredentialsError: If the password is wrong.
        """
        user = await self.store.find_by_email(email)
        if user is None:
            raise UserNotFoundError()

        if not user.is_active:
            logger.warning("Login rejected for inactive user %s", user.id)
            raise InactiveAccountError()

        if not await self._verify(password, user.password_hash):
            logger.warning("Login rejected for user %s: bad password", user.id)
            raise InvalidCredentialsError()

        logger.info("User %s logged in", user.id)
        return user, self._issue_token(user)

    # -----------------------------------------------------------------------
    # Account management
    # -----------------------------------------------------------------------

    async def create_user(self, password: str | None, **fields: Any) -> User:
        """
        Administrative creation path.

        Only the password is checked here. Uniqueness is left to the store's
        constraints and no token is issued.

        Raises:
            MissingFieldsError: If the password is absent.
            ConstraintViolationError: If the email or username is taken.
        """
        if not password:
            raise MissingFieldsError("Password is required")

        user = User(password_hash=await self._hash(password), **fields)
        await self.store.insert(user)

        logger.info("User %s created", user.id)
        return user

    async def update_user(
        self,
        user_id: uuid.UUID,
        fields: dict[str, Any],
    ) -> tuple[User, str]:
        """
        Merge the provided fields onto an existing user.

        A "password" entry is treated as a new plaintext password and
        re-hashed. A fresh token is issued afterwards so it reflects any
        change to email or role.

        Raises:
            MissingFieldsError: If a password entry is present but empty.
            UserNotFoundError: If no user has this id.
            ConstraintViolationError: If the new email or username is taken.
        """
        changes = dict(fields)
        has_password = "password" in changes
        password = changes.pop("password", None)
        if has_password and not password:
            raise MissingFieldsError("Password is required")

        await self._get_or_404(user_id)

        if password:
            changes["password_hash"] = await self._hash(password)

        user = await self.store.update(user_id, changes)

        # Field names only; values may include a password hash
        logger.info("User %s updated: %s", user_id, sorted(changes))
        return user, self._issue_token(user)

    async def update_username(
        self,
        user_id: uuid.UUID,
        username: str | None,
    ) -> User:
        """
        Change only the username. No token is reissued.

        Raises:
            MissingFieldsError: If the new username is absent.
            DuplicateUsernameError: If a different user holds that username.
            UserNotFoundError: If no user has this id.
        """
        if not username:
            raise MissingFieldsError("Username is required")

        # Re-claiming one's own username is a no-op, not a conflict
        if await self.store.find_by_username(username, exclude_id=user_id) is not None:
            logger.warning("Username change rejected: %r already in use", username)
            raise DuplicateUsernameError(username)

        user = await self.store.update(user_id, {"username": username})

        logger.info("User %s changed username", user_id)
        return user

    async def change_password(
        self,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Replace the password after verifying the current one.

        Raises:
            UserNotFoundError: If no user has this id.
            MissingFieldsError: If new_password is empty.
            IncorrectPasswordError: If current_password does not verify. The
                stored hash is left untouched.
        """
        if not new_password:
            raise MissingFieldsError("Password is required")

        user = await self._get_or_404(user_id)

        if not await self._verify(current_password, user.password_hash):
            logger.warning("Password change rejected for user %s", user_id)
            raise IncorrectPasswordError()

        await self.store.update(
            user_id, {"password_hash": await self._hash(new_password)}
        )
        logger.info("User %s changed password", user_id)

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Delete a user. An unknown id is treated as already deleted."""
        await self.store.delete(user_id)
        logger.info("User %s deleted", user_id)

    async def list_users(self) -> list[User]:
        return await self.store.list_all()

    async def get_user(self, user_id: uuid.UUID) -> User:
        """Fetch one user by id; raises UserNotFoundError if absent."""
        return await self._get_or_404(user_id)
