"""ServiceNow connector for incidents (``incident``) and catalog tasks (``sc_task``).

Records are wrapped as ``{data, sys_id, __path__, status}`` where ``data``
is the normalized row from ``mappers.to_record``. Only open rows
(``stateIN1,2``) are ever returned.
"""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.auth import TokenCache, basic_auth_header, exchange_token
from src.resolvers.core.errors import ConfigError, NotFoundError, RequiredFieldError, ResolverError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, split_csv
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result
from src.resolvers.servicenow import mappers
from src.resolvers.servicenow.config import ServiceNowSettings, get_servicenow_settings

logger = structlog.get_logger(__name__)

MAX_RESULTS = 100
OPEN_STATES = "stateIN1,2"
TOKEN_MARGIN_SECONDS = 60


class Table(NamedTuple):
    entity_type: str
    table_name: str
    has_comments: bool
    select_setting: str


INCIDENT = Table("incident", "incident", True, "SELECT_INCIDENTS")
TASK = Table("task", "sc_task", False, "SELECT_TASKS")
TABLES = {t.entity_type: t for t in (INCIDENT, TASK)}


def _split_sys_id(value: Any) -> tuple[str | None, str | None]:
    """``"<sys_id>/<table>"`` or a bare sys_id."""
    if not value or not isinstance(value, str):
        return None, None
    sys_id, _, table = value.partition("/")
    return sys_id or None, table or None


class ServiceNowResolver(ResolverBase):
    NAMESPACE = "servicenow"

    def __init__(
        self,
        settings: ServiceNowSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_servicenow_settings()
        self._tokens = TokenCache(margin_seconds=TOKEN_MARGIN_SECONDS)
        self.http = HttpClient(
            "servicenow",
            self.settings.SERVICENOW_INSTANCE_URL,
            auth=self._auth_headers,
            transport=transport,
            on_unauthorized=self._reset_token,
        )

    # ── Auth ──────────────────────────────────────────────────────────────

    def _oauth_configured(self) -> bool:
        s = self.settings
        return bool(s.SERVICENOW_CLIENT_ID and s.SERVICENOW_CLIENT_SECRET and s.SERVICENOW_REFRESH_TOKEN)

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached
        s = self.settings
        body = await exchange_token(
            self.http,
            f"{s.SERVICENOW_INSTANCE_URL.rstrip('/')}/oauth_token.do",
            {
                "grant_type": "refresh_token",
                "client_id": s.SERVICENOW_CLIENT_ID,
                "client_secret": s.SERVICENOW_CLIENT_SECRET,
                "refresh_token": s.SERVICENOW_REFRESH_TOKEN,
            },
        )
        return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

    async def _auth_headers(self) -> dict[str, str]:
        s = self.settings
        if not s.SERVICENOW_INSTANCE_URL:
            raise ConfigError("ServiceNow configuration is required: SERVICENOW_INSTANCE_URL")
        if s.SERVICENOW_USERNAME and s.SERVICENOW_PASSWORD:
            return {"Authorization": basic_auth_header(s.SERVICENOW_USERNAME, s.SERVICENOW_PASSWORD)}
        if not self._oauth_configured():
            raise ConfigError(
                "No authentication method configured. Please provide either username/password or "
                "OAuth 2.0 credentials (client_id, client_secret, refresh_token)"
            )
        return {"Authorization": f"Bearer {await self._access_token()}"}

    async def _reset_token(self) -> None:
        self._tokens.invalidate()

    # ── Records ───────────────────────────────────────────────────────────

    def _selected(self, table: Table) -> list[str]:
        return split_csv(getattr(self.settings, table.select_setting))

    def _record_request(self, table: Table, sys_id: str | None, count: int) -> tuple[str, dict[str, Any]]:
        path = f"/api/now/table/{table.table_name}"
        if sys_id:
            return f"{path}/{sys_id}", {"sysparm_query": OPEN_STATES}

        selected = self._selected(table)
        if selected:
            query = "^OR^".join(f"sys_id={s}" for s in selected)
        else:
            hours = self.settings.SERVICENOW_HOURS_AGO
            query = f"active=true^sys_created_on>=javascript:gs.hoursAgoStart({hours})^ORDERBYDESCsys_created_on"
        return path, {"sysparm_limit": count, "sysparm_query": f"{OPEN_STATES}^{query}"}

    async def _comments(self, sys_id: str) -> list[dict]:
        try:
            body = await self.http.get(
                "/api/now/table/sys_journal_field",
                params={
                    "sysparm_display_value": "true",
                    "sysparm_query": f"element=comments^element_id={sys_id}",
                },
            )
        except ResolverError as exc:
            logger.warning("servicenow_comments_failed", sys_id=sys_id, error=exc.message)
            return []
        return body.get("result") or []

    async def _records(self, table: Table, sys_id: str | None = None, count: int = MAX_RESULTS) -> list[dict]:
        path, params = self._record_request(table, sys_id, count)
        result = (await self.http.get(path, params=params)).get("result")
        rows = result[:count] if isinstance(result, list) else [result] if result else []

        records = []
        for row in rows:
            comments = await self._comments(row.get("sys_id")) if table.has_comments else None
            records.append(mappers.to_record(row, comments))
        return records

    def _as_instance(
        self, table: Table, data: Mapping[str, Any], sys_id: str, status: str | None = None
    ) -> Instance:
        attributes: dict[str, Any] = {
            "data": dict(data),
            "sys_id": sys_id,
            "__path__": f"servicenow/{table.entity_type}/{sys_id}",
        }
        if status is not None:
            attributes["status"] = status
        return self._instance(table.entity_type, attributes)

    async def _fetch(self, table: Table, query: Mapping[str, Any] | None = None) -> list[Instance]:
        sys_id, _ = _split_sys_id((query or {}).get("sys_id"))
        records = await self._records(table, sys_id, MAX_RESULTS if not sys_id else 1)
        return [
            self._as_instance(table, r, r["sys_id"], r.get("state_display") or r.get("state")) for r in records
        ]

    @returns_result
    async def query_incidents(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._fetch(INCIDENT, query)

    @returns_result
    async def query_tasks(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._fetch(TASK, query)

    async def _update(self, entity_type: str, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        """PATCH one incident or task.

        ``attrs["sys_id"]`` may carry a ``/<table>`` suffix naming the table.
        """
        table = TABLES.get(entity_type)
        if table is None:
            raise RequiredFieldError(f"Cannot update instance of type {entity_type}")
        sys_id, suffix = _split_sys_id(attrs.get("sys_id"))
        if not sys_id:
            raise RequiredFieldError(f"Missing sys_id for update of {entity_type}")
        table = TABLES.get(suffix, table)

        payload = mappers.update_payload(new_attrs, incident=table is INCIDENT)
        if not payload:
            logger.info("servicenow_update_skipped", table=table.table_name, sys_id=sys_id)
            return self._as_instance(table, {}, sys_id)

        body = await self.http.patch(f"/api/now/table/{table.table_name}/{sys_id}", json=payload)
        logger.info("servicenow_record_updated", table=table.table_name, sys_id=sys_id, fields=sorted(payload))
        return self._as_instance(table, body.get("result") or body, sys_id)

    @returns_result
    async def update_instance(
        self, entity_type: str, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]
    ) -> Instance:
        return await self._update(entity_type, attrs, new_attrs)

    @returns_result
    async def update_incident(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(INCIDENT.entity_type, attrs, new_attrs)

    @returns_result
    async def update_task(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(TASK.entity_type, attrs, new_attrs)

    # ── Users ─────────────────────────────────────────────────────────────

    @returns_result
    async def get_manager_user(self) -> dict[str, Any]:
        """Look up the configured manager account and return ``{"id": sys_id}``."""
        username = self.settings.manager_username
        if not username:
            raise ConfigError("Manager username is required: SERVICENOW_MANAGER_USERNAME or MANAGER_USERNAME")
        body = await self.http.get("/api/now/table/sys_user", params={"sysparm_query": f"user_name={username}"})
        users = body.get("result") or []
        if not users:
            raise NotFoundError(f"Manager user not found: {username}")
        logger.info("servicenow_manager_found", username=username, sys_id=users[0].get("sys_id"))
        return {"id": users[0].get("sys_id")}

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def _poll(self, table: Table, sink: SubscriptionSink) -> PollingTask:
        selected = self._selected(table)
        logger.info("servicenow_subscription_starting", table=table.table_name, selected=selected or None)
        return await self._subscribe(
            f"{table.entity_type}s",
            lambda: self._fetch(table),
            sink,
            self.settings.SERVICENOW_POLL_INTERVAL_MINUTES,
        )

    async def subscribe_incidents(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll(INCIDENT, sink)

    async def subscribe_tasks(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll(TASK, sink)
