"""Microsoft Teams connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class TeamsSettings(ConnectorSettings):
    # Integration manager that brokers the Graph auth headers
    INTEG_MANAGER_HOST: str = "http://localhost:8085"
    TEAMS_INTEGRATION_NAME: str = "teams"

    TEAMS_GRAPH_URL: str = "https://graph.microsoft.com/v1.0"


@lru_cache
def get_teams_settings() -> TeamsSettings:
    return TeamsSettings()
