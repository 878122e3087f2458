"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - create_engine(): Builds the async engine from a Settings instance
  - create_session_factory(): Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

The engine and session factory are created once by create_app() and stored
on app.state, so there is no import-time connection setup.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success and rolls back on any exception, so a failed operation never
  leaves a partial write behind.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from abilong_api.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured DATABASE_URL.

    echo=True in debug mode logs all SQL statements. Bound parameters are
    hidden so password hashes never reach the log.
    """
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        hide_parameters=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False prevents lazy-load errors after commit:
    # attribute access on a committed object must not hit the DB in async context.
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db(request: Request):
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
