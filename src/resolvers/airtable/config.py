"""Airtable connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings
from src.resolvers.core.instance import split_csv


class AirtableSettings(ConnectorSettings):
    AIRTABLE_API_KEY: str = ""
    AIRTABLE_BASE_URL: str = "https://api.airtable.com/v0"

    # Comma-separated; fields/records subscriptions zip them by index
    AIRTABLE_BASE_IDS: str = ""
    AIRTABLE_TABLE_IDS: str = ""

    AIRTABLE_POLL_INTERVAL_MINUTES: int = 5

    @property
    def base_ids(self) -> list[str]:
        return split_csv(self.AIRTABLE_BASE_IDS)

    @property
    def table_ids(self) -> list[str]:
        return split_csv(self.AIRTABLE_TABLE_IDS)


@lru_cache
def get_airtable_settings() -> AirtableSettings:
    return AirtableSettings()
