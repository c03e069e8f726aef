"""Freshdesk connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class FreshdeskSettings(ConnectorSettings):
    FRESHDESK_DOMAIN: str = ""
    FRESHDESK_BASE_URL: str = ""  # defaults to https://{FRESHDESK_DOMAIN}.freshdesk.com
    FRESHDESK_API_KEY: str = ""
    FRESHDESK_POLL_INTERVAL_MINUTES: int = 5

    @property
    def portal_url(self) -> str:
        if self.FRESHDESK_BASE_URL:
            return self.FRESHDESK_BASE_URL.rstrip("/")
        return f"https://{self.FRESHDESK_DOMAIN}.freshdesk.com"


@lru_cache
def get_freshdesk_settings() -> FreshdeskSettings:
    return FreshdeskSettings()
