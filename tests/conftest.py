"""
Test fixtures for the Abilong API test suite.

This module provides shared fixtures used across all test files:

  - settings: Test configuration (in-memory SQLite, cheap Argon2 costs)
  - app: A fresh application with all tables created, per test
  - client: Async HTTP test client (unauthenticated)
  - db_session: Async session on the same database, for store/service tests
  - signup_payload: Factory for valid /register request bodies
  - registered_user: A user signed up through the real endpoint

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - The app is built with create_app(settings), the same way production
    builds it, so no dependency overrides are needed.
  - Argon2 costs are turned down so the suite stays fast; the hashing code
    path is otherwise identical.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from abilong_api.config import Settings
from abilong_api.database import Base
from abilong_api.factory import create_app
from abilong_api.security import PasswordHasher, TokenIssuer


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        SECRET_KEY="test-secret-key-do-not-use",
        DATABASE_URL=TEST_DATABASE_URL,
        PASSWORD_HASH_TIME_COST=1,
        PASSWORD_HASH_MEMORY_COST=1024,
    )


@pytest.fixture
def hasher(settings):
    return PasswordHasher(settings)


@pytest.fixture
def token_issuer(settings):
    return TokenIssuer(settings)


@pytest_asyncio.fixture
async def app(settings):
    """Create a fresh application and its tables for each test."""
    application = create_app(settings)
    engine = application.state.engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield application
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP test client bound to the test application."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app):
    """Provide an async session bound to the test engine."""
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
def signup_payload():
    """
    Factory for a complete, valid signup body.

    Keyword arguments override or add fields; pass a value of None to drop
    a field entirely.
    """
    def _make(**overrides):
        payload = {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": "ada@example.com",
            "username": "ada",
            "password": "FirstPass123!",
            "age": "36",
            "gender": "female",
            "contactNumber": "+44 20 7946 0000",
            "address": "12 St James's Square, London",
        }
        payload.update(overrides)
        return {key: value for key, value in payload.items() if value is not None}

    return _make


@pytest_asyncio.fixture
async def registered_user(client, signup_payload):
    """
    Sign up a user via the real register endpoint.

    Returns a dict with the response "user" and "token" plus the
    plaintext "password" used.
    """
    payload = signup_payload()
    response = await client.post("/api/users/register", json=payload)
    assert response.status_code == 201, f"Signup failed: {response.text}"
    data = response.json()
    return {"user": data["user"], "token": data["token"], "password": payload["password"]}
