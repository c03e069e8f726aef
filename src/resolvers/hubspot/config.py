"""HubSpot connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class HubSpotSettings(ConnectorSettings):
    HUBSPOT_BASE_URL: str = "https://api.hubapi.com"
    HUBSPOT_ACCESS_TOKEN: str = ""
    HUBSPOT_POLL_INTERVAL_MINUTES: int = 15


@lru_cache
def get_hubspot_settings() -> HubSpotSettings:
    return HubSpotSettings()
