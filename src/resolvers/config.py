"""Shared configuration via Pydantic BaseSettings.

Every connector owns a settings class in its own ``config.py`` that derives
from ``ConnectorSettings``, so all connectors read the same ``.env`` file
while ignoring each other's variables.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class ConnectorSettings(BaseSettings):
    """Base for per-connector settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )


class Settings(ConnectorSettings):
    """Process-wide settings shared by every connector."""

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Local directory for file upload/sync operations
    FS_ROOT: str = "fs"

    def fs_path(self, *parts: str) -> Path:
        """Return a path under FS_ROOT."""
        return Path(self.FS_ROOT).joinpath(*parts)


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
