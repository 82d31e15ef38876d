"""Runtime settings for maildir storage.

Loads from environment variables with the MAILDIR_ prefix.
Example: MAILDIR_CLEAN_RETENTION_HOURS=48
"""

from __future__ import annotations

import functools
from datetime import timedelta
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tunables shared by every mailbox opened in this process.

    The key/info separator is not configurable here: it is fixed per
    platform in :mod:`maildirkit.codec`.
    """

    model_config = SettingsConfigDict(
        env_prefix="MAILDIR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    root: Path | None = Field(
        default=None,
        description="Default mailbox used by the command line when no path is given",
    )
    readdir_chunk: int = Field(
        default=4096,
        ge=1,
        le=1_000_000,
        description="Directory entries read per batch while scanning",
    )
    clean_retention_hours: float = Field(
        default=36.0,
        gt=0,
        description="Age after which staged files in tmp/ are reclaimed",
    )
    fsync: bool = Field(
        default=True,
        description="fsync staged files before publishing them",
    )
    dir_mode: int = Field(
        default=0o700,
        ge=0,
        le=0o777,
        description="Permissions for mailbox directories",
    )
    file_mode: int = Field(
        default=0o600,
        ge=0,
        le=0o777,
        description="Permissions for staged message files",
    )
    thread_timeout_seconds: float = Field(
        default=60.0,
        description="Deadline for offloaded async operations; 0 or less disables it",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level used by the command line",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def clean_retention(self) -> timedelta:
        return timedelta(hours=self.clean_retention_hours)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
