"""Zoho Expense connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings
from src.resolvers.zoho.oauth import ZohoCredentials


class ZohoExpenseSettings(ConnectorSettings):
    ZOHO_EXPENSE_BASE_URL: str = "https://www.zohoapis.com"
    ZOHO_EXPENSE_ACCOUNTS_URL: str = "https://accounts.zoho.com"
    ZOHO_EXPENSE_ORG_ID: str = ""
    ZOHO_EXPENSE_TIMEOUT_MS: int = 30000

    ZOHO_EXPENSE_ACCESS_TOKEN: str = ""
    ZOHO_EXPENSE_CLIENT_ID: str = ""
    ZOHO_EXPENSE_CLIENT_SECRET: str = ""
    ZOHO_EXPENSE_REFRESH_TOKEN: str = ""
    ZOHO_EXPENSE_AUTH_CODE: str = ""
    ZOHO_EXPENSE_REDIRECT_URL: str = ""

    @property
    def api_url(self) -> str:
        return f"{self.ZOHO_EXPENSE_BASE_URL.rstrip('/')}/expense/v1"

    @property
    def timeout_seconds(self) -> float:
        return self.ZOHO_EXPENSE_TIMEOUT_MS / 1000 if self.ZOHO_EXPENSE_TIMEOUT_MS > 0 else 30.0

    @property
    def credentials(self) -> ZohoCredentials:
        return ZohoCredentials(
            accounts_url=self.ZOHO_EXPENSE_ACCOUNTS_URL,
            access_token=self.ZOHO_EXPENSE_ACCESS_TOKEN,
            client_id=self.ZOHO_EXPENSE_CLIENT_ID,
            client_secret=self.ZOHO_EXPENSE_CLIENT_SECRET,
            refresh_token=self.ZOHO_EXPENSE_REFRESH_TOKEN,
            auth_code=self.ZOHO_EXPENSE_AUTH_CODE,
            redirect_url=self.ZOHO_EXPENSE_REDIRECT_URL,
        )


@lru_cache
def get_zoho_expense_settings() -> ZohoExpenseSettings:
    return ZohoExpenseSettings()
