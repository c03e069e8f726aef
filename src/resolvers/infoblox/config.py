"""Infoblox WAPI connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class InfobloxSettings(ConnectorSettings):
    # e.g. https://gm.example.com/wapi/v2.13.1
    INFOBLOX_BASE_URL: str = ""
    INFOBLOX_USERNAME: str = ""
    INFOBLOX_PASSWORD: str = ""

    INFOBLOX_POLL_INTERVAL_MINUTES: int = 15


@lru_cache
def get_infoblox_settings() -> InfobloxSettings:
    return InfobloxSettings()
