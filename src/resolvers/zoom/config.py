"""Zoom connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class ZoomSettings(ConnectorSettings):
    ZOOM_BASE_URL: str = "https://api.zoom.us/v2"
    ZOOM_TOKEN_URL: str = "https://zoom.us/oauth/token"

    ZOOM_ACCESS_TOKEN: str = ""

    # Server-to-Server OAuth app
    ZOOM_ACCOUNT_ID: str = ""
    ZOOM_CLIENT_ID: str = ""
    ZOOM_CLIENT_SECRET: str = ""

    ZOOM_POLL_INTERVAL_MINUTES: int = 15


@lru_cache
def get_zoom_settings() -> ZoomSettings:
    return ZoomSettings()
