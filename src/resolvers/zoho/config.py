"""Zoho CRM connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings
from src.resolvers.zoho.oauth import ZohoCredentials


class ZohoCRMSettings(ConnectorSettings):
    ZOHO_CRM_BASE_URL: str = "https://www.zohoapis.com/crm/v2"
    ZOHO_CRM_ACCOUNTS_URL: str = "https://accounts.zoho.com"
    ZOHO_CRM_ORG_ID: str = ""

    # Direct token, or OAuth2 refresh / authorization-code grants
    ZOHO_CRM_ACCESS_TOKEN: str = ""
    ZOHO_CRM_CLIENT_ID: str = ""
    ZOHO_CRM_CLIENT_SECRET: str = ""
    ZOHO_CRM_REFRESH_TOKEN: str = ""
    ZOHO_CRM_AUTH_CODE: str = ""
    ZOHO_CRM_REDIRECT_URL: str = ""

    ZOHO_CRM_POLL_INTERVAL_MINUTES: int = 10

    @property
    def credentials(self) -> ZohoCredentials:
        return ZohoCredentials(
            accounts_url=self.ZOHO_CRM_ACCOUNTS_URL,
            access_token=self.ZOHO_CRM_ACCESS_TOKEN,
            client_id=self.ZOHO_CRM_CLIENT_ID,
            client_secret=self.ZOHO_CRM_CLIENT_SECRET,
            refresh_token=self.ZOHO_CRM_REFRESH_TOKEN,
            auth_code=self.ZOHO_CRM_AUTH_CODE,
            redirect_url=self.ZOHO_CRM_REDIRECT_URL,
        )


@lru_cache
def get_zoho_crm_settings() -> ZohoCRMSettings:
    return ZohoCRMSettings()
