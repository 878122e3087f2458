"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like DuplicateEmailError)
without importing HTTP concepts. The handlers registered here translate
them into HTTP responses with a consistent JSON body:

    {"message": "human readable text", "error_type": "snake_case_tag"}

Exception hierarchy:
    AbilongAPIError (base)
    ├── MissingFieldsError        — required input absent (400)
    ├── IncorrectPasswordError    — current password did not verify (400)
    ├── InvalidCredentialsError   — login password did not verify (401)
    ├── InvalidTokenError         — bearer token missing/invalid/expired (401)
    ├── InactiveAccountError      — login attempt on a disabled account (403)
    ├── UserNotFoundError         — no user with that id/email (404)
    ├── DuplicateEmailError       — email already registered (409)
    ├── DuplicateUsernameError    — username already taken (409)
    └── ConstraintViolationError  — store rejected a write on a unique key (409)

Anything else that escapes a route becomes a 500 "Server Error". The stack
trace is logged server-side and never sent to the caller.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class AbilongAPIError(Exception):
    """Base exception for all Abilong API domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class MissingFieldsError(AbilongAPIError):
    """Raised when required input fields are absent or empty."""

    def __init__(self, detail: str = "Please fill in all required fields"):
        super().__init__(detail)


class IncorrectPasswordError(AbilongAPIError):
    """Raised when the current password supplied for a password change is wrong."""

    def __init__(self):
        super().__init__("Current password is incorrect")


class InvalidCredentialsError(AbilongAPIError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Invalid credentials")


class InvalidTokenError(AbilongAPIError):
    """Raised when a bearer token is missing, malformed, tampered with or expired."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail)


class InactiveAccountError(AbilongAPIError):
    """Raised when an inactive account tries to log in."""

    def __init__(self):
        super().__init__("Your account is inactive. Please contact support.")


class UserNotFoundError(AbilongAPIError):
    """Raised when a requested user does not exist."""

    def __init__(self):
        super().__init__("User not found")


class DuplicateEmailError(AbilongAPIError):
    """Raised when attempting to register with an email that's already in use."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already in use")


class DuplicateUsernameError(AbilongAPIError):
    """Raised when a username is already held by another user."""

    def __init__(self, username: str):
        self.username = username
        super().__init__("Username already in use")


class ConstraintViolationError(AbilongAPIError):
    """
    Raised by the credential store when the database rejects a write
    because of a UNIQUE constraint on email or username.

    The service layer pre-checks uniqueness to produce friendlier messages,
    but two concurrent requests can both pass that check; this error is what
    the loser of the race receives.
    """

    def __init__(self, detail: str = "Email or username already in use"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_response(
    status_code: int,
    exc: AbilongAPIError,
    error_type: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": exc.detail, "error_type": error_type},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    This is called once from create_app().
    """

    @app.exception_handler(MissingFieldsError)
    async def missing_fields_handler(
        request: Request, exc: MissingFieldsError
    ) -> JSONResponse:
        return _error_response(400, exc, "missing_fields")

    @app.exception_handler(IncorrectPasswordError)
    async def incorrect_password_handler(
        request: Request, exc: IncorrectPasswordError
    ) -> JSONResponse:
        return _error_response(400, exc, "incorrect_password")

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return _error_response(401, exc, "invalid_credentials")

    @app.exception_handler(InvalidTokenError)
    async def invalid_token_handler(
        request: Request, exc: InvalidTokenError
    ) -> JSONResponse:
        return _error_response(
            401, exc, "invalid_token", headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(InactiveAccountError)
    async def inactive_account_handler(
        request: Request, exc: InactiveAccountError
    ) -> JSONResponse:
        return _error_response(403, exc, "inactive_account")

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(
        request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return _error_response(404, exc, "user_not_found")

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(
        request: Request, exc: DuplicateEmailError
    ) -> JSONResponse:
        return _error_response(409, exc, "duplicate_email")

    @app.exception_handler(DuplicateUsernameError)
    async def duplicate_username_handler(
        request: Request, exc: DuplicateUsernameError
    ) -> JSONResponse:
        return _error_response(409, exc, "duplicate_username")

    @app.exception_handler(ConstraintViolationError)
    async def constraint_violation_handler(
        request: Request, exc: ConstraintViolationError
    ) -> JSONResponse:
        return _error_response(409, exc, "constraint_violation")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Malformed or missing input is a plain bad request in this API
        return JSONResponse(
            status_code=400,
            content={
                "message": "Invalid request",
                "error_type": "validation_error",
                "errors": [
                    {"loc": list(err["loc"]), "msg": err["msg"]}
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"message": "Server Error", "error_type": "internal_error"},
        )
