"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. Priority order:
  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

There is no module-level settings instance. The process entry point calls
get_settings() once and hands the result to create_app(), which passes it
by reference to everything that needs it (engine, hasher, token issuer).
Tests build their own Settings(...) the same way.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Abilong API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Abilong API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/abilong.db"

    # --- Authentication ---
    # REQUIRED: No default, forces the operator to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Password hashing (Argon2 work factor) ---
    PASSWORD_HASH_TIME_COST: int = 3
    PASSWORD_HASH_MEMORY_COST: int = 65536  # KiB

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
