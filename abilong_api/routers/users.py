"""
Users router — registration, login and account management endpoints.

Endpoints (mounted under /api/users):
  GET    /                  — List all users
  POST   /                  — Create a user (administrative path)
  GET    /me                — Current user, from the bearer token
  PUT    /{user_id}         — Update any user fields, returns a fresh token
  DELETE /{user_id}         — Delete a user
  POST   /login             — Authenticate and get a token
  POST   /register          — Sign up and get a token
  PUT    /{user_id}/username — Change username
  PUT    /{user_id}/password — Change password

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - Every response goes through UserResponse, which has no password field.
  - Apart from /me, these endpoints are not guarded by a token. Role is
    stored and carried in tokens but not enforced.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, status

from abilong_api.dependencies import get_account_service, get_current_claims
from abilong_api.schemas.user import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    SignupRequest,
    UserCreateRequest,
    UserListResponse,
    UsernameUpdateRequest,
    UsernameUpdateResponse,
    UserResponse,
    UserUpdateRequest,
)
from abilong_api.services.account_service import AccountService

router = APIRouter()


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=UserListResponse,
    summary="List all users",
)
async def list_users(
    service: AccountService = Depends(get_account_service),
):
    """Return every user, without password hashes."""
    users = await service.list_users()
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users]
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(
    request: UserCreateRequest,
    service: AccountService = Depends(get_account_service),
):
    """
    Create a user directly (administrative path).

    The password is required. No token is returned, and email/username
    clashes are reported by the database constraint (409).
    """
    fields = request.model_dump(exclude={"password"})
    return await service.create_user(password=request.password, **fields)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    service: AccountService = Depends(get_account_service),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token for the Authorization header:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 60).
    """
    user, token = await service.login(email=request.email, password=request.password)
    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: SignupRequest,
    service: AccountService = Depends(get_account_service),
):
    """
    Sign up a new user with role "editor".

    - **firstName**, **lastName**, **email**, **username**, **password**: required
    - **email** and **username** must not already be in use (409)
    """
    user, token = await service.signup(**request.model_dump())
    return AuthResponse(
        message="Signup successful",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the authenticated user",
)
async def get_me(
    claims: dict[str, Any] = Depends(get_current_claims),
    service: AccountService = Depends(get_account_service),
):
    """Resolve the bearer token's id claim to the current user record."""
    return await service.get_user(uuid.UUID(claims["id"]))


# ---------------------------------------------------------------------------
# Single user
# ---------------------------------------------------------------------------

@router.put(
    "/{user_id}",
    response_model=AuthResponse,
    summary="Update a user",
)
async def update_user(
    user_id: uuid.UUID,
    request: UserUpdateRequest,
    service: AccountService = Depends(get_account_service),
):
    """
    Update any provided fields and return a fresh token.

    Fields omitted (or sent as null) are left unchanged. A new password is
    re-hashed before it is stored.
    """
    fields = request.model_dump(exclude_unset=True, exclude_none=True)
    user, token = await service.update_user(user_id, fields)
    return AuthResponse(
        message="User updated successfully",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
)
async def delete_user(
    user_id: uuid.UUID,
    service: AccountService = Depends(get_account_service),
):
    await service.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")


@router.put(
    "/{user_id}/username",
    response_model=UsernameUpdateResponse,
    summary="Change username",
)
async def update_username(
    user_id: uuid.UUID,
    request: UsernameUpdateRequest,
    service: AccountService = Depends(get_account_service),
):
    """Change only the username. The caller's existing token stays valid."""
    user = await service.update_username(user_id, request.username)
    return UsernameUpdateResponse(
        message="Username updated successfully",
        user=UserResponse.model_validate(user),
    )


@router.put(
    "/{user_id}/password",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    user_id: uuid.UUID,
    request: PasswordChangeRequest,
    service: AccountService = Depends(get_account_service),
):
    """Replace the password after checking the current one."""
    await service.change_password(
        user_id,
        current_password=request.current_password,
        new_password=request.new_password,
    )
    return MessageResponse(message="Password changed successfully")
