"""Airtable connector.

Airtable has no "list bases" endpoint for personal tokens, so bases come from
AIRTABLE_BASE_IDS. Tables and fields are read from the base metadata
endpoint; records use the data API with a 100-record cap.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import httpx
import structlog

from src.resolvers.airtable import mappers
from src.resolvers.airtable.config import AirtableSettings, get_airtable_settings
from src.resolvers.core.errors import ConfigError, HttpStatusError, NotFoundError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result

logger = structlog.get_logger(__name__)

MAX_RECORDS = 100


def _parse_fields(fields: Any) -> dict:
    if isinstance(fields, str):
        try:
            fields = json.loads(fields)
        except ValueError as exc:
            raise RequiredFieldError(f"fields must be a JSON object: {exc}") from exc
    if not isinstance(fields, dict):
        raise RequiredFieldError("fields must be a JSON object")
    return fields


class AirtableResolver(ResolverBase):
    """Bases, tables, fields and records for one Airtable account."""

    NAMESPACE = "airtable"

    def __init__(
        self,
        settings: AirtableSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_airtable_settings()
        self.http = HttpClient(
            "airtable",
            self.settings.AIRTABLE_BASE_URL,
            auth=self._auth_headers,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if not self.settings.AIRTABLE_API_KEY:
            raise ConfigError("Airtable configuration is required: AIRTABLE_API_KEY")
        return {"Authorization": f"Bearer {self.settings.AIRTABLE_API_KEY}"}

    async def _tables(self, base_id: str) -> list[dict]:
        body = await self.http.get(f"/meta/bases/{base_id}/tables")
        return body.get("tables", []) if isinstance(body, dict) else []

    # ── Bases ─────────────────────────────────────────────────────────────

    def _base(self, base_id: str) -> Instance:
        return self._instance("Base", mappers.to_base({"id": base_id, "name": base_id}))

    @returns_result
    async def query_base(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        base_id = path_id(query)
        configured = self.settings.base_ids
        if base_id:
            if base_id in configured:
                return [self._base(base_id)]
            try:
                await self._tables(base_id)
            except HttpStatusError as exc:
                raise NotFoundError("Base not found", status=exc.status) from exc
            return [self._base(base_id)]
        if not configured:
            raise ConfigError("No base IDs configured. Set AIRTABLE_BASE_IDS environment variable.")
        return [self._base(b) for b in configured]

    # ── Tables ────────────────────────────────────────────────────────────

    @returns_result
    async def query_table(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        table_id = path_id(query)
        base_id = query.get("base_id") or table_id
        if not base_id:
            raise RequiredFieldError("Base ID is required")
        tables = await self._tables(base_id)
        if query.get("base_id") and table_id:
            tables = [t for t in tables if t.get("id") == table_id]
        return self._instances("Table", tables, mappers.to_table, base_id)

    # ── Fields ────────────────────────────────────────────────────────────

    async def _list_fields(self, base_id: str, table_id: str) -> list[Instance]:
        for table in await self._tables(base_id):
            if table.get("id") == table_id:
                return self._instances("Field", table.get("fields", []), mappers.to_field, table_id)
        raise NotFoundError("Table not found")

    @returns_result
    async def query_field(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        base_id = query.get("base_id")
        table_id = query.get("table_id") or path_id(query)
        if not base_id or not table_id:
            raise RequiredFieldError("Base ID and Table ID are required")
        return await self._list_fields(base_id, table_id)

    # ── Records ───────────────────────────────────────────────────────────

    async def _post_record(self, attrs: Mapping[str, Any]) -> tuple[dict, str, str]:
        fields, table_id, base_id = attrs.get("fields"), attrs.get("table_id"), attrs.get("base_id")
        if not fields or not table_id or not base_id:
            raise RequiredFieldError("Fields, table_id, and base_id are required")
        result = await self.http.post(f"/{base_id}/{table_id}", json={"fields": _parse_fields(fields)})
        record = result["records"][0] if isinstance(result, dict) and result.get("records") else result
        return record, table_id, base_id

    async def _patch_record(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> tuple[dict, str, str]:
        record_id, table_id, base_id = attrs.get("id"), attrs.get("table_id"), attrs.get("base_id")
        if not record_id or not table_id or not base_id:
            raise RequiredFieldError("Record ID, table_id, and base_id are required")
        fields = new_attrs.get("fields")
        if not fields:
            raise RequiredFieldError("Fields are required for update")
        result = await self.http.patch(
            f"/{base_id}/{table_id}/{record_id}", json={"fields": _parse_fields(fields)}
        )
        record = result["records"][0] if isinstance(result, dict) and result.get("records") else result
        return record, table_id, base_id

    async def _list_records(self, base_id: str, table_id: str) -> list[Instance]:
        body = await self.http.get(f"/{base_id}/{table_id}", params={"maxRecords": MAX_RECORDS})
        records = body.get("records", [])
        return self._instances("Record", records, mappers.to_record, table_id, base_id, limit=MAX_RECORDS)

    @returns_result
    async def create_record(self, attrs: Mapping[str, Any]) -> Instance:
        record, table_id, base_id = await self._post_record(attrs)
        return self._instance("Record", mappers.to_record(record, table_id, base_id))

    @returns_result
    async def query_record(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        base_id, table_id = query.get("base_id"), query.get("table_id")
        if not base_id or not table_id:
            raise RequiredFieldError("Base ID and Table ID are required")
        record_id = path_id(query)
        if record_id:
            record = await self.http.get(f"/{base_id}/{table_id}/{record_id}")
            return [self._instance("Record", mappers.to_record(record, table_id, base_id))]
        return await self._list_records(base_id, table_id)

    @returns_result
    async def update_record(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        record, table_id, base_id = await self._patch_record(attrs, new_attrs)
        return self._instance("Record", mappers.to_record(record, table_id, base_id))

    @returns_result
    async def delete_record(self, attrs: Mapping[str, Any]) -> None:
        record_id, table_id, base_id = attrs.get("id"), attrs.get("table_id"), attrs.get("base_id")
        if not record_id or not table_id or not base_id:
            raise RequiredFieldError("Record ID, table_id, and base_id are required")
        await self.http.delete(f"/{base_id}/{table_id}/{record_id}")

    # ── Actions ───────────────────────────────────────────────────────────

    @returns_result
    async def create_record_action(self, attrs: Mapping[str, Any]) -> Instance:
        record, _, _ = await self._post_record(attrs)
        return self._instance(
            "CreateRecordOutput",
            {
                "id": record.get("id"),
                "created_time": record.get("createdTime") or "",
                "fields": record.get("fields") or {},
            },
        )

    @returns_result
    async def query_create_record(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        if not path_id(query):
            raise RequiredFieldError("Record ID is required")
        # Action outputs do not carry base/table ids, so they cannot be re-read.
        raise RequiredFieldError("Base ID and Table ID are required to query record")

    @returns_result
    async def update_record_action(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        record, table_id, base_id = await self._patch_record(attrs, new_attrs)
        return self._instance("Record", mappers.to_record(record, table_id, base_id))

    # ── Subscriptions ─────────────────────────────────────────────────────

    def _zipped_ids(self) -> list[tuple[str, str]]:
        return list(zip(self.settings.base_ids, self.settings.table_ids))

    async def _poll_bases(self) -> list[Instance]:
        return [self._base(b) for b in self.settings.base_ids]

    async def _poll_tables(self) -> list[Instance]:
        if not self.settings.base_ids:
            logger.error("airtable_subscription_misconfigured", entity="tables", missing="AIRTABLE_BASE_IDS")
            return []
        out: list[Instance] = []
        for base_id in self.settings.base_ids:
            out.extend(self._instances("Table", await self._tables(base_id), mappers.to_table, base_id))
        return out

    async def _poll_fields(self) -> list[Instance]:
        out: list[Instance] = []
        for base_id, table_id in self._zipped_ids():
            try:
                out.extend(await self._list_fields(base_id, table_id))
            except NotFoundError:
                logger.warning("airtable_table_missing", base_id=base_id, table_id=table_id)
        return out

    async def _poll_records(self) -> list[Instance]:
        out: list[Instance] = []
        for base_id, table_id in self._zipped_ids():
            out.extend(await self._list_records(base_id, table_id))
        return out

    async def subscribe_bases(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("bases", self._poll_bases, sink, self.settings.AIRTABLE_POLL_INTERVAL_MINUTES)

    async def subscribe_tables(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("tables", self._poll_tables, sink, self.settings.AIRTABLE_POLL_INTERVAL_MINUTES)

    async def subscribe_fields(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("fields", self._poll_fields, sink, self.settings.AIRTABLE_POLL_INTERVAL_MINUTES)

    async def subscribe_records(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "records", self._poll_records, sink, self.settings.AIRTABLE_POLL_INTERVAL_MINUTES
        )
