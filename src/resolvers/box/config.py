"""Box connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class BoxSettings(ConnectorSettings):
    BOX_BASE_URL: str = "https://api.box.com"
    BOX_UPLOAD_URL: str = "https://upload.box.com/api/2.0/files/content"
    BOX_TOKEN_URL: str = "https://api.box.com/oauth2/token"

    # Auth, tried in this order
    BOX_ACCESS_TOKEN: str = ""
    BOX_CLIENT_ID: str = ""
    BOX_CLIENT_SECRET: str = ""
    BOX_AUTH_CODE: str = ""
    BOX_REFRESH_TOKEN: str = ""

    BOX_POLL_INTERVAL_MINUTES: int = 60


@lru_cache
def get_box_settings() -> BoxSettings:
    return BoxSettings()
