"""ServiceNow connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class ServiceNowSettings(ConnectorSettings):
    SERVICENOW_INSTANCE_URL: str = ""

    # Basic auth wins when both are set
    SERVICENOW_USERNAME: str = ""
    SERVICENOW_PASSWORD: str = ""

    # OAuth2 refresh-token grant
    SERVICENOW_CLIENT_ID: str = ""
    SERVICENOW_CLIENT_SECRET: str = ""
    SERVICENOW_REFRESH_TOKEN: str = ""

    # Record selection (comma-separated sys_ids override the lookback query)
    SELECT_INCIDENTS: str = ""
    SELECT_TASKS: str = ""
    SERVICENOW_HOURS_AGO: int = 100000

    SERVICENOW_MANAGER_USERNAME: str = ""
    MANAGER_USERNAME: str = ""

    SERVICENOW_POLL_INTERVAL_MINUTES: int = 10

    @property
    def manager_username(self) -> str:
        return self.SERVICENOW_MANAGER_USERNAME or self.MANAGER_USERNAME


@lru_cache
def get_servicenow_settings() -> ServiceNowSettings:
    return ServiceNowSettings()
