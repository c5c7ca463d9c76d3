"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored; secrets never live in source code.

Pydantic Settings resolves each field in this order:
  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

Usage:
    from bookkeeping.config import settings
    print(settings.DATABASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the bookkeeping API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "School Bookkeeping API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # "console" for humans, "json" for log shippers
    LOG_FORMAT: str = "console"

    # --- Database ---
    # SQLite by default; any async SQLAlchemy URL works (e.g. postgresql+asyncpg://...)
    DATABASE_URL: str = "sqlite+aiosqlite:///./bookkeeping.db"
    # Seconds a SQLite writer waits for the database write lock before failing
    SQLITE_BUSY_TIMEOUT: float = 30.0

    # --- Authentication ---
    # REQUIRED: No default — forces the operator to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Ledger policy ---
    # Default look-ahead window (days) for upcoming liability reminders
    REMINDER_DAYS_AHEAD: int = 7
    # Transfers never overdraw. When this is on, no other entry may either.
    ENFORCE_NON_NEGATIVE_BALANCES: bool = False


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
