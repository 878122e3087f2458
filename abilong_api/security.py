"""
Security utilities: password hashing and JWT tokens.

This module centralizes all cryptographic operations so they're easy to
audit and update. Two concerns are handled here, each as a small class that
is constructed once from Settings and shared for the life of the process:

1. PASSWORD HASHING (Argon2) — PasswordHasher
   - Passwords are never stored in plaintext
   - Argon2 is memory-hard and time-hard; both costs are tunable through
     PASSWORD_HASH_TIME_COST and PASSWORD_HASH_MEMORY_COST
   - Every hash embeds a fresh random salt, so hashing the same password
     twice yields two different strings that both verify
   - passlib's CryptContext does the heavy lifting

2. JWT TOKENS — TokenIssuer
   - After signup, login or a profile update the user receives a signed JWT
     carrying their id, email and role
   - The token is signed with SECRET_KEY (HS256 by default)
   - Tokens expire ACCESS_TOKEN_EXPIRE_MINUTES after issuance (default 60)
   - The server is stateless: no session storage, no revocation
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from abilong_api.config import Settings
from abilong_api.exceptions import InvalidTokenError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------


class PasswordHasher:
    """One-way salted password hashing and verification."""

    def __init__(self, settings: Settings):
        # "deprecated='auto'" lets passlib verify hashes from older schemes
        # if the active scheme ever changes.
        self._context = CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__time_cost=settings.PASSWORD_HASH_TIME_COST,
            argon2__memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
        )

    def hash(self, plain_password: str) -> str:
        """
        Hash a plaintext password using Argon2id.

        Returns:
            An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
        """
        return self._context.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plaintext password against a stored Argon2 hash.

        Never raises on a mismatch or an unreadable hash; both are False.
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            return False


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies short-lived bearer tokens."""

    def __init__(self, settings: Settings):
        self._secret_key = settings.SECRET_KEY
        self._algorithm = settings.ALGORITHM
        self._lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    def issue(self, user_id: uuid.UUID, email: str, role: str) -> str:
        """
        Create a signed JWT access token.

        The token payload contains:
          - "id", "email", "role": the identity claims
          - "iat": Issued-at timestamp
          - "exp": Expiration timestamp, exactly one token lifetime after "iat"
        """
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "id": str(user_id),
            "email": email,
            "role": role,
            "iat": now,
            "exp": now + self._lifetime,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Decode and verify a JWT access token.

        Raises:
            InvalidTokenError: If the token is expired, tampered with, or
                missing identity claims.

        Returns:
            The decoded claims dictionary.
        """
        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except JWTError:
            raise InvalidTokenError()

        if not all(claims.get(key) for key in ("id", "email", "role")):
            raise InvalidTokenError()
        return claims
