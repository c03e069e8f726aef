"""Zendesk connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class ZendeskSettings(ConnectorSettings):
    ZENDESK_SUBDOMAIN: str = ""
    ZENDESK_EMAIL: str = ""
    ZENDESK_API_TOKEN: str = ""

    ZENDESK_POLL_INTERVAL_MINUTES: int = 10

    @property
    def base_url(self) -> str:
        if not self.ZENDESK_SUBDOMAIN:
            return ""
        return f"https://{self.ZENDESK_SUBDOMAIN}.zendesk.com/api/v2"


@lru_cache
def get_zendesk_settings() -> ZendeskSettings:
    return ZendeskSettings()
