"""Token caching and OAuth2 token exchange helpers."""

from __future__ import annotations

import base64
import time
from typing import TYPE_CHECKING, Any, Callable

import structlog

from src.resolvers.core.errors import VendorError

if TYPE_CHECKING:
    from src.resolvers.core.http import HttpClient

logger = structlog.get_logger(__name__)

DEFAULT_EXPIRY_MARGIN = 300


class TokenCache:
    """Holds one bearer token and the time it stops being usable.

    A token is considered expired ``margin_seconds`` before the vendor's
    ``expires_in``. Tokens stored without ``expires_in`` never expire.
    """

    def __init__(
        self,
        margin_seconds: float = DEFAULT_EXPIRY_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._margin = margin_seconds
        self._clock = clock
        self._token: str | None = None
        self._expires_at: float | None = None

    def get(self) -> str | None:
        """Return the cached token, or None if empty or expired."""
        if self._token is None:
            return None
        if self._expires_at is not None and self._clock() >= self._expires_at:
            return None
        return self._token

    def set(self, token: str, expires_in: float | None = None) -> str:
        self._token = token
        self._expires_at = None if expires_in is None else self._clock() + float(expires_in) - self._margin
        return token

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = None

    @property
    def expires_at(self) -> float | None:
        return self._expires_at


def basic_auth_header(username: str, password: str) -> str:
    raw = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


async def exchange_token(
    http: HttpClient,
    url: str,
    data: dict[str, Any],
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    token_field: str = "access_token",
) -> dict:
    """POST a form-encoded OAuth2 token request and return the JSON reply.

    Raises VendorError when the reply carries no ``token_field``.
    """
    body = await http.request(
        "POST",
        url,
        data=data or None,
        params=params,
        headers=headers,
        authenticate=False,
    )
    if not isinstance(body, dict) or not body.get(token_field):
        detail = body.get("error_description") or body.get("error") if isinstance(body, dict) else body
        logger.error("token_exchange_failed", service=http.service, url=url, detail=detail)
        raise VendorError(
            f"{http.service} token exchange returned no {token_field}: {detail}",
            code="token_exchange",
        )
    logger.info("token_exchanged", service=http.service, expires_in=body.get("expires_in"))
    return body


__all__ = ["TokenCache", "basic_auth_header", "exchange_token", "DEFAULT_EXPIRY_MARGIN"]
