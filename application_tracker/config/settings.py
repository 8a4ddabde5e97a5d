"""
Application settings and configuration.
Uses pydantic-settings for environment variable loading.
"""

from pathlib import Path
from typing import Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Package directory (holds database/schema.sql)
PACKAGE_ROOT = Path(__file__).parent.parent
DATA_DIR = Path.cwd() / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TRACKER_",
        extra="ignore",
    )

    # Database
    database_path: Path = Field(
        default=DATA_DIR / "applications.db",
        description="Path to SQLite database file"
    )

    # Record store
    store_backend: Literal["sqlite", "rest"] = Field(
        default="sqlite",
        description="Which record store backs the repository"
    )
    rest_url: Optional[str] = Field(
        default=None,
        description="Base URL of the hosted PostgREST endpoint, e.g. https://xyz.supabase.co"
    )
    rest_api_key: Optional[str] = Field(
        default=None,
        description="Public API key sent as the apikey header"
    )
    rest_access_token: Optional[str] = Field(
        default=None,
        description="Access token of the signed-in user, issued by the auth provider"
    )
    store_timeout_seconds: int = Field(
        default=30,
        description="HTTP request timeout for the hosted store"
    )
    store_max_retries: int = Field(
        default=3,
        description="Maximum attempts for requests failing at the transport level"
    )

    # Session
    owner_id: Optional[str] = Field(
        default=None,
        description="Authenticated user id handed over by the auth provider"
    )

    # Dashboard
    recent_limit: int = Field(
        default=5,
        description="Number of applications shown as recent activity"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")


# Global settings instance
settings = Settings()
