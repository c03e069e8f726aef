"""Zoho accounts OAuth2, shared by the CRM and Expense connectors.

Token sources, first match wins:
1. a configured access token (used as-is, never refreshed)
2. client id + secret + refresh token
3. client id + secret + authorization code + redirect URL

An authorization code is exchanged at most once. When the exchange hands
back a refresh token it is kept in memory and used from then on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import structlog

from src.resolvers.core.auth import TokenCache, exchange_token
from src.resolvers.core.errors import ConfigError

if TYPE_CHECKING:
    from src.resolvers.core.http import HttpClient

logger = structlog.get_logger(__name__)

TOKEN_MARGIN_SECONDS = 60


class ZohoCredentials(NamedTuple):
    accounts_url: str
    access_token: str = ""
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    auth_code: str = ""
    redirect_url: str = ""


class ZohoOAuth:
    def __init__(self, product: str, credentials: ZohoCredentials, missing_message: str) -> None:
        self.product = product
        self.credentials = credentials
        self._missing_message = missing_message
        self._tokens = TokenCache(margin_seconds=TOKEN_MARGIN_SECONDS)
        self._refresh_token = credentials.refresh_token
        self._auth_code_used = False

    @property
    def token_url(self) -> str:
        return f"{self.credentials.accounts_url.rstrip('/')}/oauth/v2/token"

    def _grant(self) -> dict[str, str]:
        c = self.credentials
        if c.client_id and c.client_secret and self._refresh_token:
            return {
                "grant_type": "refresh_token",
                "refresh_token": self._refresh_token,
                "client_id": c.client_id,
                "client_secret": c.client_secret,
            }
        if c.client_id and c.client_secret and c.auth_code and c.redirect_url and not self._auth_code_used:
            return {
                "grant_type": "authorization_code",
                "code": c.auth_code,
                "client_id": c.client_id,
                "client_secret": c.client_secret,
                "redirect_uri": c.redirect_url,
            }
        raise ConfigError(self._missing_message)

    async def access_token(self, http: HttpClient) -> str:
        cached = self._tokens.get()
        if cached:
            return cached
        if self.credentials.access_token:
            return self._tokens.set(self.credentials.access_token)

        data = self._grant()
        body = await exchange_token(http, self.token_url, data)
        if data["grant_type"] == "authorization_code":
            self._auth_code_used = True
        if body.get("refresh_token"):
            self._refresh_token = body["refresh_token"]
            logger.info("zoho_refresh_token_received", product=self.product)
        return self._tokens.set(body["access_token"], body.get("expires_in"))

    async def authorization(self, http: HttpClient) -> str:
        return f"Zoho-oauthtoken {await self.access_token(http)}"

    async def invalidate(self) -> None:
        self._tokens.invalidate()


__all__ = ["ZohoCredentials", "ZohoOAuth"]
