"""
Centralized application configuration using pydantic-settings.

All settings are read from environment variables or .env file.
Share quota and retry bounds default to the values the public API documents;
override them per deployment through the environment.
"""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Priority: environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    # --- Database ---
    DB_URL: str = Field(
        default="postgresql://localhost:5432/chaoslinks",
        description="PostgreSQL connection URL"
    )

    # --- Redis (job queue for the expired-share purge) ---
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    # --- Server ---
    HOST: str = Field(
        default="127.0.0.1",
        description="Server bind host"
    )
    PORT: int = Field(
        default=8888,
        description="Server bind port"
    )
    PUBLIC_BASE_URL: str = Field(
        default="http://127.0.0.1:8888",
        description="Origin used to build public share URLs"
    )

    # --- Debug / Logging ---
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    OTEL_ENABLED: bool = Field(
        default=False,
        description="Instrument FastAPI and SQLAlchemy with OpenTelemetry"
    )

    # --- Share links ---
    SHARE_RATE_LIMIT_PER_HOUR: int = Field(
        default=10,
        ge=1,
        description="Maximum shares one owner may create inside the quota window"
    )
    SHARE_RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=3600,
        ge=1,
        description="Length of the trailing quota window"
    )
    SHARE_RESET_GRACE_SECONDS: int = Field(
        default=1,
        ge=0,
        description="Added to the advertised reset time to avoid boundary flapping"
    )
    SHARE_CODE_MAX_RETRIES: int = Field(
        default=5,
        ge=1,
        description="Attempts to find or insert a non-colliding short code"
    )
    SHARE_EXPIRATION_DAYS: int = Field(
        default=7,
        ge=1,
        description="Lifetime of a share link in days"
    )
    SHARE_TRANSACTION_MAX_RETRIES: int = Field(
        default=3,
        ge=0,
        description="Whole-transaction retries after a serialization failure"
    )
    SHARE_TRANSACTION_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound on one share transaction, retries included"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_upper

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings()


# --- Singleton instance for easy import ---
settings = get_settings()


# --- Module-level exports ---
# These allow code using `config.DATABASE_URL` to read plain values.

# Database
DATABASE_URL: str = settings.DB_URL

# Server
HOST: str = settings.HOST
PORT: int = settings.PORT
DEBUG: bool = settings.DEBUG
LOG_LEVEL: str = settings.LOG_LEVEL
PUBLIC_BASE_URL: str = settings.PUBLIC_BASE_URL
OTEL_ENABLED: bool = settings.OTEL_ENABLED

# Redis
REDIS_URL: str = settings.REDIS_URL

# --- Paths (computed, not from env) ---
PROJECT_ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
LOGS_PATH: str = os.path.join(PROJECT_ROOT, "logs")
