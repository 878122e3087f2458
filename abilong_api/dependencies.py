"""
FastAPI dependencies for services and authentication.

Dependencies are reusable functions that FastAPI injects into route handlers:

  get_db (request -> AsyncSession)
      └── get_account_service (session + app.state -> AccountService)

  get_current_claims (Bearer JWT -> claims dict)

The process-wide PasswordHasher and TokenIssuer are built once by
create_app() and stored on app.state; these dependencies only read them.
"""

from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from abilong_api.database import get_db
from abilong_api.exceptions import InvalidTokenError
from abilong_api.services.account_service import AccountService
from abilong_api.services.credential_store import CredentialStore


# auto_error=False so a missing header becomes our own 401 body instead of
# FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)


async def get_account_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AccountService:
    """Build a request-scoped AccountService over this request's session."""
    return AccountService(
        store=CredentialStore(db),
        hasher=request.app.state.password_hasher,
        token_issuer=request.app.state.token_issuer,
    )


async def get_current_claims(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """
    Extract and verify the bearer token, returning its claims.

    Raises:
        InvalidTokenError: If the header is missing or the token does not verify.
    """
    if credentials is None:
        raise InvalidTokenError("Not authenticated")
    return request.app.state.token_issuer.verify(credentials.credentials)
