"""Expensify connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class ExpensifySettings(ConnectorSettings):
    EXPENSIFY_API_URL: str = "https://integrations.expensify.com/Integration-Server/ExpensifyIntegrations"
    EXPENSIFY_PARTNER_USER_ID: str = ""
    EXPENSIFY_PARTNER_USER_SECRET: str = ""
    EXPENSIFY_POLL_INTERVAL_MINUTES: int = 15


@lru_cache
def get_expensify_settings() -> ExpensifySettings:
    return ExpensifySettings()
