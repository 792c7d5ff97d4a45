"""
Service configuration via pydantic-settings.

Values come from the environment (or a .env file); names are
case-insensitive, e.g. ``DATABASE_URL`` or ``CUSTOMIZE_ANONYMOUS_PREVIEW_ALLOWED``.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Storage
    database_url: str = "sqlite+aiosqlite:///./customize.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    sqlite_busy_timeout_ms: int = 5000

    # Identity
    secret_key: str = "change-this-in-production-minimum-32-characters-long"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440
    # A nonce verifies for between half and all of this window
    nonce_lifetime_seconds: int = Field(default=86400, ge=2)

    # Runtime
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    slow_request_ms: int = 1000

    # HTTP surface
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Customize Preview Service"
    version: str = "0.4.2"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Customize sessions
    customize_anonymous_preview_allowed: bool = True
    default_stylesheet: str = "meridian"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
