"""Google Drive connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class GoogleDriveSettings(ConnectorSettings):
    GOOGLE_DRIVE_BASE_URL: str = "https://www.googleapis.com"
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"

    # Auth, tried in this order
    GOOGLE_ACCESS_TOKEN: str = ""
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REFRESH_TOKEN: str = ""
    GOOGLE_SERVICE_ACCOUNT_FILE: str = ""

    GOOGLE_DRIVE_POLL_INTERVAL_MINUTES: int = 60


@lru_cache
def get_google_drive_settings() -> GoogleDriveSettings:
    return GoogleDriveSettings()
