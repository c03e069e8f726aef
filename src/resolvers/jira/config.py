"""Jira Cloud connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class JiraSettings(ConnectorSettings):
    JIRA_CLOUD_ID: str = ""
    # Site URL used for browse links, e.g. https://acme.atlassian.net
    JIRA_BASE_URL: str = ""
    JIRA_API_URL: str = "https://api.atlassian.com"
    JIRA_TOKEN_URL: str = "https://auth.atlassian.com/oauth/token"

    # Auth, tried in this order
    JIRA_ACCESS_TOKEN: str = ""
    JIRA_EMAIL: str = ""
    JIRA_API_TOKEN: str = ""
    JIRA_CLIENT_ID: str = ""
    JIRA_CLIENT_SECRET: str = ""

    JIRA_POLL_INTERVAL_MINUTES: int = 5


@lru_cache
def get_jira_settings() -> JiraSettings:
    return JiraSettings()
