"""
Pydantic schemas for user account endpoints.

These schemas control what user data flows in and out of the API.
Field names are camelCase on the wire (firstName, contactNumber, isActive)
and snake_case in Python; both spellings are accepted on input.

Notice that password_hash is NEVER included in any response schema —
this is a critical security boundary.
"""

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

from abilong_api.models.user import UserRole


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SignupRequest(CamelModel):
    """
    Request body for POST /api/users/register.

    The five credential/name fields are optional here so the account service
    can reject them with its own "Please fill in all required fields" error.
    """
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    username: str | None = None
    password: str | None = None
    age: str
    gender: str
    contact_number: str
    address: str


class UserCreateRequest(CamelModel):
    """Request body for POST /api/users (administrative creation)."""
    first_name: str
    last_name: str
    email: EmailStr
    username: str
    password: str | None = None
    age: str
    gender: str
    contact_number: str
    address: str
    role: UserRole = UserRole.EDITOR
    is_active: bool = True


class UserUpdateRequest(CamelModel):
    """Request body for PUT /api/users/{id} (all fields optional)."""
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    username: str | None = None
    password: str | None = None
    age: str | None = None
    gender: str | None = None
    contact_number: str | None = None
    address: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None


class UsernameUpdateRequest(CamelModel):
    """Request body for PUT /api/users/{id}/username."""
    username: str | None = None


class PasswordChangeRequest(CamelModel):
    """Request body for PUT /api/users/{id}/password."""
    current_password: str
    new_password: str


class LoginRequest(CamelModel):
    """Request body for POST /api/users/login."""
    email: EmailStr
    password: str


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class UserResponse(CamelModel):
    """Sanitized representation of a User (never includes the password hash)."""
    id: uuid.UUID
    first_name: str
    last_name: str
    age: str
    gender: str
    contact_number: str
    email: str
    username: str
    address: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without tzinfo; they are stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class UserListResponse(CamelModel):
    users: list[UserResponse]


class AuthResponse(CamelModel):
    """Response body for signup, login and profile update: user info + JWT."""
    message: str
    user: UserResponse
    token: str


class UsernameUpdateResponse(CamelModel):
    message: str
    user: UserResponse


class MessageResponse(CamelModel):
    message: str
