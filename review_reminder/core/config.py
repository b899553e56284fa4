"""Application configuration using Pydantic Settings."""

from datetime import time, timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application
    app_name: str = "PR Review Reminder"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./pr_reviews.db")
    database_echo: bool = False  # Log SQL queries

    # Slack Integration
    slack_signing_secret: str | None = Field(default=None, alias="SLACK_SIGNING_SECRET")
    slack_api_base_url: str = Field(default="https://slack.com/api", alias="SLACK_API_BASE_URL")
    slack_alerts_webhook_url: str | None = Field(default=None, alias="SLACK_ALERTS_WEBHOOK_URL")

    # Encryption key for stored workspace tokens
    encryption_key: str | None = Field(
        default=None,
        alias="ENCRYPTION_KEY",
        description="Fernet key for encrypting Slack tokens. Generate with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
    )

    # Reminder engine. Unset values fall back to the profile picked by `environment`.
    reminder_interval: timedelta | None = Field(default=None, alias="REMINDER_INTERVAL")
    reminder_start_after: timedelta | None = Field(default=None, alias="REMINDER_START_AFTER")
    reminder_channel_after: timedelta | None = Field(default=None, alias="REMINDER_CHANNEL_AFTER")
    reminder_run_at: time | None = Field(default=None, alias="REMINDER_RUN_AT")
    reminder_max_concurrency: int = Field(default=5, ge=1, le=50, alias="REMINDER_MAX_CONCURRENCY")

    @property
    def encryption_enabled(self) -> bool:
        """Check if encryption is configured."""
        return bool(self.encryption_key)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def database_url_async(self) -> str:
        """Get async database URL (uses asyncpg for PostgreSQL)."""
        url = str(self.database_url)
        return url.replace("postgresql://", "postgresql+asyncpg://")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
