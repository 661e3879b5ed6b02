"""
Configuration settings for the Daily Task Tracker backend.
All deployment-specific values are loaded from environment variables.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Daily Task Tracker"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False)
    environment: str = Field(default="production")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./tasks.db")
    database_echo: bool = Field(default=False)

    # Connection pool (ignored for SQLite and in the test environment)
    db_pool_size: int = Field(default=5)          # Steady-state connections
    db_max_overflow: int = Field(default=20)      # Burst connections on top of pool_size
    db_pool_timeout: int = Field(default=30)      # Seconds to wait for a free connection
    db_pool_recycle: int = Field(default=3600)    # Max connection lifetime in seconds

    # Per-request deadline for service calls
    request_timeout_seconds: float = Field(default=30.0)


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
