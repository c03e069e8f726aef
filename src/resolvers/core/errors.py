"""Typed errors raised inside connectors.

Connector internals raise these; the public CRUD surface converts them to
``Failure`` values via ``returns_result`` (see ``result.py``).
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    config = "config"
    network = "network"
    http_status = "http_status"
    vendor = "vendor"
    validation = "validation"
    not_found = "not_found"
    unexpected = "unexpected"


class ResolverError(Exception):
    """Base class for every error a connector raises."""

    kind: ErrorKind = ErrorKind.unexpected

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def to_failure(self):
        from src.resolvers.core.result import Failure

        return Failure(kind=self.kind, message=self.message, code=self.code, status=self.status)


class ConfigError(ResolverError):
    """Required settings are missing or invalid."""

    kind = ErrorKind.config


class RequiredFieldError(ResolverError):
    """A CRUD call was missing a required attribute."""

    kind = ErrorKind.validation


class NotFoundError(ResolverError):
    kind = ErrorKind.not_found


class VendorError(ResolverError):
    """The vendor answered, but reported an application-level error."""

    kind = ErrorKind.vendor


class TransportError(ResolverError):
    """The request never produced an HTTP response.

    ``reason`` is one of ``timeout``, ``unreachable``, ``connection`` or
    ``transport``.
    """

    kind = ErrorKind.network

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message, code=reason)
        self.reason = reason


class HttpStatusError(ResolverError):
    """The vendor returned a non-2xx status."""

    kind = ErrorKind.http_status

    def __init__(self, status: int, body: Any, *, method: str = "", url: str = "") -> None:
        super().__init__(f"HTTP Error: {status} - {_render_body(body)}", status=status)
        self.body = body
        self.method = method
        self.url = url

    @property
    def body_code(self) -> str | None:
        """Vendor error code from a JSON body, if it carries one."""
        if isinstance(self.body, dict):
            code = self.body.get("code")
            return str(code) if code is not None else None
        return None


def _render_body(body: Any) -> str:
    if isinstance(body, (dict, list)):
        return json.dumps(body)
    return str(body)


__all__ = [
    "ErrorKind",
    "ResolverError",
    "ConfigError",
    "RequiredFieldError",
    "NotFoundError",
    "VendorError",
    "TransportError",
    "HttpStatusError",
]
