"""Salesforce connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class SalesforceSettings(ConnectorSettings):
    # Either name works; SALESFORCE_BASE_URL wins when both are set.
    SALESFORCE_BASE_URL: str = ""
    SALESFORCE_INSTANCE_URL: str = ""
    SALESFORCE_API_VERSION: str = "v59.0"

    SALESFORCE_ACCESS_TOKEN: str = ""
    SALESFORCE_CLIENT_ID: str = ""
    SALESFORCE_CLIENT_SECRET: str = ""

    SALESFORCE_POLL_INTERVAL_MINUTES: int = 15

    @property
    def instance_url(self) -> str:
        return (self.SALESFORCE_BASE_URL or self.SALESFORCE_INSTANCE_URL).rstrip("/")


@lru_cache
def get_salesforce_settings() -> SalesforceSettings:
    return SalesforceSettings()
