"""Zoho CRM connector: leads, contacts, accounts, deals, tasks and notes.

Every module shares one CRUD shape: records travel as ``{"data": [...]}``
and a per-record ``status: "error"`` in a 2xx reply is a vendor failure.
Subscriptions remember the ids they have emitted and skip them on later
passes.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.errors import RequiredFieldError, VendorError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result
from src.resolvers.zoho import mappers
from src.resolvers.zoho.config import ZohoCRMSettings, get_zoho_crm_settings
from src.resolvers.zoho.oauth import ZohoOAuth

logger = structlog.get_logger(__name__)

LIST_SIZE = 100

AUTH_REQUIRED = (
    "Zoho CRM authentication required: set ZOHO_CRM_ACCESS_TOKEN or OAuth2 vars "
    "(client id/secret + auth code + redirect, or client id/secret + refresh token)."
)


class ZohoModule(NamedTuple):
    entity_type: str
    module: str
    fields: Mapping[str, mappers.FieldDef]
    mapper: Callable[[Mapping[str, Any]], dict]


LEADS = ZohoModule("Lead", "Leads", mappers.LEAD_FIELDS, mappers.to_lead)
CONTACTS = ZohoModule("Contact", "Contacts", mappers.CONTACT_FIELDS, mappers.to_contact)
ACCOUNTS = ZohoModule("Account", "Accounts", mappers.ACCOUNT_FIELDS, mappers.to_account)
DEALS = ZohoModule("Deal", "Deals", mappers.DEAL_FIELDS, mappers.to_deal)
TASKS = ZohoModule("Task", "Tasks", mappers.TASK_FIELDS, mappers.to_task)
NOTES = ZohoModule("Note", "Notes", mappers.NOTE_FIELDS, mappers.to_note)


def _first_row(body: Any) -> dict:
    """Return ``data[0]`` of a write reply, raising on empty or per-record errors."""
    rows = body.get("data") if isinstance(body, dict) else None
    if not rows:
        raise VendorError("No data returned from Zoho CRM")
    row = rows[0]
    if row.get("status") == "error":
        raise VendorError(row.get("message") or "Zoho CRM rejected the record", code=row.get("code"))
    return row


class ZohoCRMResolver(ResolverBase):
    NAMESPACE = "zoho"

    def __init__(
        self,
        settings: ZohoCRMSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_zoho_crm_settings()
        self.oauth = ZohoOAuth("crm", self.settings.credentials, AUTH_REQUIRED)
        self.http = HttpClient(
            "zoho",
            self.settings.ZOHO_CRM_BASE_URL,
            auth=self._auth_headers,
            transport=transport,
            on_unauthorized=self.oauth.invalidate,
        )

    async def _auth_headers(self) -> dict[str, str]:
        headers = {"Authorization": await self.oauth.authorization(self.http)}
        if self.settings.ZOHO_CRM_ORG_ID:
            headers["X-ZOHO-ORGID"] = self.settings.ZOHO_CRM_ORG_ID
        return headers

    # ── Generic module CRUD ───────────────────────────────────────────────

    async def _create(self, mod: ZohoModule, attrs: Mapping[str, Any]) -> Instance:
        record = mappers.build_record(attrs, mod.fields)
        row = _first_row(await self.http.post(f"/{mod.module}", json={"data": [record]}))
        details = row.get("details") or {}
        logger.info("zoho_record_created", module=mod.module, id=details.get("id"))
        return self._instance(mod.entity_type, mod.mapper({**record, **details}))

    async def _list(self, mod: ZohoModule) -> list[Instance]:
        body = await self.http.get(f"/{mod.module}", params={"per_page": LIST_SIZE})
        # Zoho answers 204 with no body when a module is empty.
        return self._instances(mod.entity_type, body.get("data") or [], mod.mapper, limit=LIST_SIZE)

    async def _query(self, mod: ZohoModule, query: Mapping[str, Any] | None) -> list[Instance]:
        record_id = path_id(query)
        if not record_id:
            return await self._list(mod)
        body = await self.http.get(f"/{mod.module}/{record_id}")
        rows = body.get("data") or [{}]
        return [self._instance(mod.entity_type, mod.mapper(rows[0]))]

    async def _update(self, mod: ZohoModule, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        record_id = attrs.get("id")
        if not record_id:
            raise RequiredFieldError(f"{mod.entity_type} ID is required for update")
        updates = mappers.build_record(new_attrs, mod.fields)
        if not updates:
            return self._instance(mod.entity_type, attrs)

        body = await self.http.put(f"/{mod.module}/{record_id}", json={"data": [{"id": record_id, **updates}]})
        row = _first_row(body)
        logger.info("zoho_record_updated", module=mod.module, id=record_id, fields=sorted(updates))
        return self._instance(mod.entity_type, mod.mapper({**updates, **(row.get("details") or {}), "id": record_id}))

    async def _delete(self, mod: ZohoModule, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{mod.entity_type} ID is required for deletion")
        await self.http.delete(f"/{mod.module}/{attrs['id']}")
        logger.info("zoho_record_deleted", module=mod.module, id=attrs["id"])

    # ── Leads ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_lead(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create(LEADS, attrs)

    @returns_result
    async def query_lead(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(LEADS, query)

    @returns_result
    async def update_lead(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(LEADS, attrs, new_attrs)

    @returns_result
    async def delete_lead(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(LEADS, attrs)

    # ── Contacts ──────────────────────────────────────────────────────────

    @returns_result
    async def create_contact(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create(CONTACTS, attrs)

    @returns_result
    async def query_contact(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(CONTACTS, query)

    @returns_result
    async def update_contact(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(CONTACTS, attrs, new_attrs)

    @returns_result
    async def delete_contact(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(CONTACTS, attrs)

    # ── Accounts ──────────────────────────────────────────────────────────

    @returns_result
    async def create_account(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create(ACCOUNTS, attrs)

    @returns_result
    async def query_account(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(ACCOUNTS, query)

    @returns_result
    async def update_account(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(ACCOUNTS, attrs, new_attrs)

    @returns_result
    async def delete_account(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(ACCOUNTS, attrs)

    # ── Deals ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_deal(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create(DEALS, attrs)

    @returns_result
    async def query_deal(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(DEALS, query)

    @returns_result
    async def update_deal(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(DEALS, attrs, new_attrs)

    @returns_result
    async def delete_deal(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(DEALS, attrs)

    # ── Tasks ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_task(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create(TASKS, attrs)

    @returns_result
    async def query_task(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(TASKS, query)

    @returns_result
    async def update_task(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(TASKS, attrs, new_attrs)

    @returns_result
    async def delete_task(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(TASKS, attrs)

    # ── Notes ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_note(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create(NOTES, attrs)

    @returns_result
    async def query_note(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(NOTES, query)

    @returns_result
    async def update_note(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(NOTES, attrs, new_attrs)

    @returns_result
    async def delete_note(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(NOTES, attrs)

    # ── Subscriptions ─────────────────────────────────────────────────────

    def _poll(self, entity: str, mod: ZohoModule, sink: SubscriptionSink) -> Awaitable[PollingTask]:
        return self._subscribe(
            entity,
            lambda: self._list(mod),
            sink,
            self.settings.ZOHO_CRM_POLL_INTERVAL_MINUTES,
            dedupe=True,
        )

    async def subscribe_leads(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("leads", LEADS, sink)

    async def subscribe_contacts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("contacts", CONTACTS, sink)

    async def subscribe_accounts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("accounts", ACCOUNTS, sink)

    async def subscribe_deals(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("deals", DEALS, sink)

    async def subscribe_tasks(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("tasks", TASKS, sink)

    async def subscribe_notes(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("notes", NOTES, sink)
