"""Configuration system for astewatch.

Uses pydantic-settings to load configuration from environment variables
and .env files with sensible defaults for the Italian auction portals.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with ASTEWATCH_ (e.g., ASTEWATCH_PACING_SECONDS).
    """

    model_config = SettingsConfigDict(
        env_prefix="ASTEWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the SQLite database",
    )
    db_name: str = Field(
        default="astewatch.db",
        description="SQLite database file name",
    )
    persistence: Literal["sqlite", "memory"] = Field(
        default="sqlite",
        description="Where reconciled listings are persisted",
    )
    store_capacity: int = Field(
        default=5000,
        ge=1,
        description="Maximum listings kept; oldest-inserted are evicted first",
    )

    # Fetching
    fast_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP request timeout in seconds",
    )
    rendered_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Browser navigation timeout in seconds",
    )
    attempt_grace: float = Field(
        default=10.0,
        ge=0,
        description="Extra seconds allowed per attempt on top of the transport timeout",
    )
    pacing_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Wait between two sources within a cycle",
    )
    max_blocks_per_source: int = Field(
        default=100,
        ge=1,
        description="Maximum listing containers read from one page",
    )
    user_agent: str | None = Field(
        default=None,
        description="User-Agent override for both fetchers",
    )
    headless: bool = Field(
        default=True,
        description="Run the rendering browser headless",
    )
    stable_ids: bool = Field(
        default=True,
        description="Derive listing ids from content instead of position + time",
    )
    sites_file: Path | None = Field(
        default=None,
        description="JSON file replacing the default site catalogue",
    )

    # Scheduling
    scheduler_enabled: bool = Field(
        default=True,
        description="Run the daily background cycle",
    )
    schedule_hour: int = Field(default=3, ge=0, le=23, description="Daily run hour (local time)")
    schedule_minute: int = Field(default=0, ge=0, le=59, description="Daily run minute")

    # Reporting
    performance_window_hours: int = Field(
        default=24,
        ge=1,
        description="Window for per-site performance statistics",
    )

    @property
    def db_path(self) -> Path:
        """Full path of the SQLite database."""
        return self.data_dir / self.db_name


# Singleton instance for easy import
config = Settings()
