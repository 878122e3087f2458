"""
FastAPI application factory.

create_app() builds and wires the application from one Settings instance:
  1. Logging — root logger level and format
  2. Shared resources — engine, session factory, PasswordHasher, TokenIssuer,
     each constructed once and stored on app.state
  3. Lifespan manager — table creation on startup, engine disposal on shutdown
  4. CORS middleware — allows configured origins to make cross-origin requests
  5. Exception handlers — maps domain errors to HTTP responses
  6. Router registration — mounts the users API under /api/users

Tests call create_app(Settings(...)) directly with their own database URL
and secret, so nothing here reads the environment unless no settings are
passed.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from abilong_api.config import Settings, get_settings
from abilong_api.database import Base, create_engine, create_session_factory
from abilong_api.exceptions import register_exception_handlers
from abilong_api.routers import users
from abilong_api.security import PasswordHasher, TokenIssuer


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Creates all database tables if they don't exist.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    # --- Shutdown ---
    await app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build a configured FastAPI application."""
    if settings is None:
        settings = get_settings()

    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="User accounts REST API with registration, login and profile management",
        lifespan=lifespan,
    )

    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.password_hasher = PasswordHasher(settings)
    app.state.token_issuer = TokenIssuer(settings)

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(users.router, prefix="/api/users", tags=["Users"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for deployment probes."""
        return {"status": "ok", "version": settings.APP_VERSION}

    return app
