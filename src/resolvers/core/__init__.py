"""Shared connector infrastructure.

- HttpClient: per-connector async HTTP wrapper with typed errors
- TokenCache: bearer token plus expiry, owned by each resolver instance
- Instance / make_instance / SubscriptionSink: host entity contract
- Success / Failure / returns_result: the never-raising public surface
- PollingTask: APScheduler-backed polling subscription handle
"""

from src.resolvers.core.auth import TokenCache, basic_auth_header, exchange_token
from src.resolvers.core.errors import (
    ConfigError,
    ErrorKind,
    HttpStatusError,
    NotFoundError,
    RequiredFieldError,
    ResolverError,
    TransportError,
    VendorError,
)
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, make_instance, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.result import Failure, Result, Success, returns_result

__all__ = [
    "HttpClient",
    "TokenCache",
    "basic_auth_header",
    "exchange_token",
    "ErrorKind",
    "ResolverError",
    "ConfigError",
    "RequiredFieldError",
    "NotFoundError",
    "VendorError",
    "TransportError",
    "HttpStatusError",
    "Instance",
    "SubscriptionSink",
    "make_instance",
    "path_id",
    "PollingTask",
    "Success",
    "Failure",
    "Result",
    "returns_result",
]
