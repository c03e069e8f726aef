"""Infoblox WAPI connector: DNS records and networks.

Creates are idempotent from the caller's point of view: an existing record
with the same identity, or a WAPI ``Client.Ibap.Data.Conflict`` reply,
yields ``Failure(code="AlreadyExists")``. Every other failure carries
``code="other"``.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.auth import basic_auth_header
from src.resolvers.core.errors import ConfigError, ErrorKind, HttpStatusError, RequiredFieldError, ResolverError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, compact, path_id, to_int
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Failure, Result, Success, returns_result
from src.resolvers.infoblox import mappers
from src.resolvers.infoblox.config import InfobloxSettings, get_infoblox_settings

logger = structlog.get_logger(__name__)

CONFLICT_CODE = "Client.Ibap.Data.Conflict"
ALREADY_EXISTS = "AlreadyExists"
OTHER = "other"


def _same(existing: Mapping[str, Any], data: Mapping[str, Any]) -> bool:
    return all(existing.get(k) == v for k, v in data.items())


def _same_host(existing: Mapping[str, Any], data: Mapping[str, Any]) -> bool:
    if existing.get("name") != data.get("name"):
        return False
    v4, v6 = data.get("ipv4addr"), data.get("ipv6addr")
    return bool((v4 and existing.get("ipv4addr") == v4) or (v6 and existing.get("ipv6addr") == v6))


class RecordType(NamedTuple):
    entity_type: str
    path: str
    fields: tuple[str, ...]
    mapper: Callable[[dict], dict]
    lookup: str = "name"
    matches: Callable[[Mapping[str, Any], Mapping[str, Any]], bool] = _same


AAAA = RecordType("AAAA", "/record:aaaa", ("name", "ipv6addr"), mappers.to_aaaa)
CNAME = RecordType("CNAME", "/record:cname", ("name", "canonical"), mappers.to_cname)
MX = RecordType("MX", "/record:mx", ("name", "preference", "mail_exchanger"), mappers.to_mx)
HOST = RecordType("Host", "/record:host", ("name", "ipv4addr", "ipv6addr"), mappers.to_host, matches=_same_host)
TXT = RecordType("TXT", "/record:txt", ("name", "text"), mappers.to_txt)
PTR = RecordType("PTR", "/record:ptr", ("ptrdname", "ipv4addr"), mappers.to_ptr, lookup="ptrdname")
NETWORK = RecordType("Network", "/network", ("network",), mappers.to_network, lookup="network")


def _unwrap(body: Any) -> list[dict]:
    records = body.get("result", body) if isinstance(body, dict) else body
    if isinstance(records, list):
        return records
    return [records] if records else []


def _coded(exc: ResolverError, code: str) -> Failure:
    return Failure(kind=exc.kind, message=exc.message, code=code, status=exc.status)


class InfobloxResolver(ResolverBase):
    NAMESPACE = "infoblox"

    def __init__(
        self,
        settings: InfobloxSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_infoblox_settings()
        self.http = HttpClient(
            "infoblox",
            self.settings.INFOBLOX_BASE_URL,
            auth=self._auth_headers,
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if not self.settings.INFOBLOX_BASE_URL:
            raise ConfigError("Infoblox configuration is required: INFOBLOX_BASE_URL")
        return {
            "Authorization": basic_auth_header(self.settings.INFOBLOX_USERNAME, self.settings.INFOBLOX_PASSWORD)
        }

    # ── Generic record operations ─────────────────────────────────────────

    def _payload(self, rtype: RecordType, attrs: Mapping[str, Any]) -> dict[str, Any]:
        data = {name: attrs.get(name) for name in rtype.fields}
        if rtype is MX:
            data["preference"] = to_int(data.get("preference"))
        return compact(data)

    async def _create(self, rtype: RecordType, attrs: Mapping[str, Any]) -> Result:
        data = self._payload(rtype, attrs)
        try:
            if not data.get(rtype.lookup):
                raise RequiredFieldError(f"{rtype.lookup} is required")
            existing = _unwrap(await self.http.get(rtype.path, params={rtype.lookup: data[rtype.lookup]}))
            if any(rtype.matches(r, data) and mappers.ref_of(r) for r in existing):
                logger.info("infoblox_record_exists", record_type=rtype.entity_type, lookup=data[rtype.lookup])
                message = f"{rtype.entity_type} record already exists"
                return Failure(kind=ErrorKind.vendor, message=message, code=ALREADY_EXISTS)
            await self.http.post(rtype.path, json=data)
        except HttpStatusError as exc:
            if exc.body_code == CONFLICT_CODE:
                logger.info("infoblox_record_conflict", record_type=rtype.entity_type, status=exc.status)
                return _coded(exc, ALREADY_EXISTS)
            logger.error("infoblox_create_failed", record_type=rtype.entity_type, error=exc.message)
            return _coded(exc, OTHER)
        except ResolverError as exc:
            logger.error("infoblox_create_failed", record_type=rtype.entity_type, error=exc.message)
            return _coded(exc, OTHER)
        return Success()

    def _endpoint(self, rtype: RecordType, query: Mapping[str, Any] | None) -> tuple[str, dict[str, Any] | None]:
        if not query:
            return rtype.path, None
        key = next(iter(query))
        value = query[key]
        if key == "__path__":
            marker = f"infoblox${rtype.entity_type}/"
            ref = str(value).split(marker, 1)[1] if marker in str(value) else path_id(query)
            return f"{rtype.path}/{ref}", None
        return rtype.path, {key: value}

    async def _fetch(self, rtype: RecordType, query: Mapping[str, Any] | None = None) -> list[Instance]:
        path, params = self._endpoint(rtype, query)
        return self._instances(rtype.entity_type, _unwrap(await self.http.get(path, params=params)), rtype.mapper)

    async def _query(self, rtype: RecordType, query: Mapping[str, Any] | None) -> Result | list[Instance]:
        try:
            return await self._fetch(rtype, query)
        except ResolverError as exc:
            logger.error("infoblox_query_failed", record_type=rtype.entity_type, error=exc.message)
            return _coded(exc, OTHER)

    async def _delete(self, rtype: RecordType, attrs: Mapping[str, Any]) -> Result:
        ref = attrs.get("_ref") or attrs.get("ref")
        try:
            if not ref:
                raise RequiredFieldError(f"{rtype.entity_type} _ref is required")
            await self.http.delete(f"{rtype.path}/{ref}")
        except ResolverError as exc:
            logger.error("infoblox_delete_failed", record_type=rtype.entity_type, ref=ref, error=exc.message)
            return _coded(exc, OTHER)
        return Success()

    # ── AAAA ──────────────────────────────────────────────────────────────

    @returns_result
    async def create_aaaa(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(AAAA, attrs)

    @returns_result
    async def query_aaaa(self, query: Mapping[str, Any] | None = None):
        return await self._query(AAAA, query)

    @returns_result
    async def delete_aaaa(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(AAAA, attrs)

    # ── CNAME ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_cname(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(CNAME, attrs)

    @returns_result
    async def query_cname(self, query: Mapping[str, Any] | None = None):
        return await self._query(CNAME, query)

    @returns_result
    async def delete_cname(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(CNAME, attrs)

    # ── MX ────────────────────────────────────────────────────────────────

    @returns_result
    async def create_mx(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(MX, attrs)

    @returns_result
    async def query_mx(self, query: Mapping[str, Any] | None = None):
        return await self._query(MX, query)

    @returns_result
    async def delete_mx(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(MX, attrs)

    # ── Host ──────────────────────────────────────────────────────────────

    @returns_result
    async def create_host(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(HOST, attrs)

    @returns_result
    async def query_host(self, query: Mapping[str, Any] | None = None):
        return await self._query(HOST, query)

    @returns_result
    async def delete_host(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(HOST, attrs)

    # ── TXT ───────────────────────────────────────────────────────────────

    @returns_result
    async def create_txt(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(TXT, attrs)

    @returns_result
    async def query_txt(self, query: Mapping[str, Any] | None = None):
        return await self._query(TXT, query)

    @returns_result
    async def delete_txt(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(TXT, attrs)

    # ── PTR ───────────────────────────────────────────────────────────────

    @returns_result
    async def create_ptr(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(PTR, attrs)

    @returns_result
    async def query_ptr(self, query: Mapping[str, Any] | None = None):
        return await self._query(PTR, query)

    @returns_result
    async def delete_ptr(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(PTR, attrs)

    # ── Networks ──────────────────────────────────────────────────────────

    @returns_result
    async def create_network(self, attrs: Mapping[str, Any]) -> Result:
        return await self._create(NETWORK, attrs)

    @returns_result
    async def query_network(self, query: Mapping[str, Any] | None = None):
        return await self._query(NETWORK, query)

    @returns_result
    async def delete_network(self, attrs: Mapping[str, Any]) -> Result:
        return await self._delete(NETWORK, attrs)

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_hosts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "hosts", lambda: self._fetch(HOST), sink, self.settings.INFOBLOX_POLL_INTERVAL_MINUTES
        )

    async def subscribe_networks(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "networks", lambda: self._fetch(NETWORK), sink, self.settings.INFOBLOX_POLL_INTERVAL_MINUTES
        )
