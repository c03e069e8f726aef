"""Shared async HTTP wrapper used by every connector.

One HttpClient per connector instance. Each call opens a short-lived
httpx.AsyncClient with the connector's timeout, injects auth headers from
an async builder, decodes the body and raises typed errors:

- non-2xx            -> HttpStatusError (message "HTTP Error: <status> - <body>")
- timeout            -> TransportError(reason="timeout")
- connect failure    -> TransportError(reason="unreachable")
- dropped connection -> TransportError(reason="connection")
- anything else      -> TransportError(reason="transport")

When ``on_unauthorized`` is given, a 401 triggers the hook (normally a token
invalidation) and exactly one retry.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

from src.resolvers.core.errors import HttpStatusError, TransportError

logger = structlog.get_logger(__name__)

AuthBuilder = Callable[[], Awaitable[dict[str, str]]]


def _is_unauthorized(exc: BaseException) -> bool:
    return isinstance(exc, HttpStatusError) and exc.status == 401


def _without_content_type(headers: dict[str, str]) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() != "content-type"}


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpClient:
    """Async client bound to one vendor base URL.

    Args:
        service: Connector name used in log events.
        base_url: Prefix for relative paths. Paths starting with ``http``
            are used as-is.
        auth: Async callable returning auth headers for each request.
        headers: Static headers sent on every request.
        timeout: Default per-request timeout in seconds.
        transport: Optional httpx transport (tests pass MockTransport or
            ASGITransport).
        on_unauthorized: Async hook run before the single 401 retry.
    """

    # Timeouts per operation type
    TIMEOUT_DEFAULT = 30.0
    TIMEOUT_UPLOAD = 120.0
    TIMEOUT_DOWNLOAD = 60.0

    def __init__(
        self,
        service: str,
        base_url: str,
        *,
        auth: AuthBuilder | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = TIMEOUT_DEFAULT,
        transport: httpx.AsyncBaseTransport | None = None,
        on_unauthorized: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.service = service
        self.base_url = base_url.rstrip("/")
        self._auth = auth
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._transport = transport
        self._on_unauthorized = on_unauthorized

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def _client(self, timeout: float, follow_redirects: bool = False, has_body: bool = True) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(
            headers=self._headers if has_body else _without_content_type(self._headers),
            timeout=timeout,
            transport=self._transport,
            follow_redirects=follow_redirects,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        json: Any = None,
        data: Any = None,
        files: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        raw: bool = False,
        authenticate: bool = True,
        follow_redirects: bool = False,
    ) -> Any:
        """Send one request and return the decoded body.

        Returns parsed JSON, falling back to text; an empty body yields ``{}``.
        With ``raw=True`` the undecoded bytes are returned.
        """
        kwargs = dict(
            params=params,
            json=json,
            data=data,
            files=files,
            content=content,
            headers=headers,
            timeout=timeout,
            raw=raw,
            authenticate=authenticate,
            follow_redirects=follow_redirects,
        )
        if not (authenticate and self._on_unauthorized):
            return await self._send(method, path, **kwargs)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(2),
            retry=retry_if_exception(_is_unauthorized),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("http_unauthorized_retry", service=self.service, method=method, path=path)
                    await self._on_unauthorized()
                return await self._send(method, path, **kwargs)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Any,
        json: Any,
        data: Any,
        files: Any,
        content: bytes | None,
        headers: dict[str, str] | None,
        timeout: float | None,
        raw: bool,
        authenticate: bool,
        follow_redirects: bool,
    ) -> Any:
        url = self.url(path)
        request_headers: dict[str, str] = {}
        if authenticate and self._auth is not None:
            request_headers.update(await self._auth())
        if headers:
            request_headers.update(headers)
        has_body = any(x is not None for x in (json, data, files, content))
        if not has_body:
            request_headers = _without_content_type(request_headers)

        logger.debug("http_request", service=self.service, method=method, url=url, has_body=has_body)
        try:
            async with self._client(timeout or self._timeout, follow_redirects, has_body) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    content=content,
                    headers=request_headers,
                )
        except httpx.TimeoutException as exc:
            raise self._transport_error("timeout", method, url, exc) from exc
        except httpx.ConnectError as exc:
            raise self._transport_error("unreachable", method, url, exc) from exc
        except (httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError) as exc:
            raise self._transport_error("connection", method, url, exc) from exc
        except httpx.TransportError as exc:
            raise self._transport_error("transport", method, url, exc) from exc

        logger.debug("http_response", service=self.service, method=method, url=url, status=response.status_code)

        if not response.is_success:
            body = _decode(response)
            logger.error(
                "http_request_failed",
                service=self.service,
                method=method,
                url=url,
                status=response.status_code,
                body=body,
            )
            raise HttpStatusError(response.status_code, body, method=method, url=url)

        if raw:
            return response.content
        return _decode(response)

    def _transport_error(self, reason: str, method: str, url: str, exc: Exception) -> TransportError:
        logger.error(
            "http_transport_error",
            service=self.service,
            method=method,
            url=url,
            reason=reason,
            error=str(exc),
        )
        return TransportError(f"{self.service} {reason} error on {method} {url}: {exc}", reason=reason)

    # ── Shorthands ────────────────────────────────────────────────────────

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)


__all__ = ["HttpClient", "AuthBuilder"]
