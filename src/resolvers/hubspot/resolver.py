"""HubSpot connector: contacts, companies, deals, tasks and owners."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import Fetcher, PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Success, returns_result
from src.resolvers.hubspot import mappers
from src.resolvers.hubspot.config import HubSpotSettings, get_hubspot_settings

logger = structlog.get_logger(__name__)


class CrmObject(NamedTuple):
    entity_type: str
    path: str
    properties: Mapping[str, str]
    mapper: Callable[[Mapping[str, Any]], dict]


CONTACTS = CrmObject("Contact", "/crm/v3/objects/contacts", mappers.CONTACT_PROPERTIES, mappers.to_contact)
COMPANIES = CrmObject("Company", "/crm/v3/objects/companies", mappers.COMPANY_PROPERTIES, mappers.to_company)
DEALS = CrmObject("Deal", "/crm/v3/objects/deals", mappers.DEAL_PROPERTIES, mappers.to_deal)
TASKS = CrmObject("Task", "/crm/v3/objects/tasks", mappers.TASK_PROPERTIES, mappers.to_task)

OWNERS_PATH = "/crm/v3/owners"


class HubSpotResolver(ResolverBase):
    NAMESPACE = "hubspot"

    def __init__(
        self,
        settings: HubSpotSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_hubspot_settings()
        self.http = HttpClient(
            "hubspot",
            self.settings.HUBSPOT_BASE_URL,
            auth=self._auth_headers,
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if not self.settings.HUBSPOT_ACCESS_TOKEN:
            raise ConfigError("HubSpot access token is required")
        return {"Authorization": f"Bearer {self.settings.HUBSPOT_ACCESS_TOKEN}"}

    # ── Generic CRM object operations ─────────────────────────────────────

    async def _create(self, obj: CrmObject, attrs: Mapping[str, Any]) -> Success:
        result = await self.http.post(obj.path, json=mappers.to_properties(attrs, obj.properties))
        logger.info("hubspot_object_created", entity=obj.entity_type, id=result.get("id"))
        return Success(id=str(result.get("id")))

    async def _list(self, obj: CrmObject) -> list[Instance]:
        body = await self.http.get(obj.path)
        return self._instances(obj.entity_type, body.get("results") or [], obj.mapper)

    async def _query(self, obj: CrmObject, query: Mapping[str, Any] | None) -> list[Instance]:
        record_id = path_id(query)
        if record_id:
            return [self._instance(obj.entity_type, obj.mapper(await self.http.get(f"{obj.path}/{record_id}")))]
        return await self._list(obj)

    async def _update(self, obj: CrmObject, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{obj.entity_type} ID is required for update")
        result = await self.http.patch(f"{obj.path}/{attrs['id']}", json=mappers.to_properties(new_attrs, obj.properties))
        return self._instance(obj.entity_type, obj.mapper(result))

    async def _delete(self, obj: CrmObject, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{obj.entity_type} ID is required for deletion")
        await self.http.delete(f"{obj.path}/{attrs['id']}")

    # ── Contacts ──────────────────────────────────────────────────────────

    @returns_result
    async def create_contact(self, attrs: Mapping[str, Any]) -> Success:
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

    # ── Companies ─────────────────────────────────────────────────────────

    @returns_result
    async def create_company(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create(COMPANIES, attrs)

    @returns_result
    async def query_company(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(COMPANIES, query)

    @returns_result
    async def update_company(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update(COMPANIES, attrs, new_attrs)

    @returns_result
    async def delete_company(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(COMPANIES, attrs)

    # ── Deals ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_deal(self, attrs: Mapping[str, Any]) -> Success:
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
    async def create_task(self, attrs: Mapping[str, Any]) -> Success:
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

    # ── Owners (read-only) ────────────────────────────────────────────────

    async def _list_owners(self) -> list[Instance]:
        body = await self.http.get(OWNERS_PATH)
        return self._instances("Owner", body.get("results") or [], mappers.to_owner)

    @returns_result
    async def query_owner(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        owner_id = path_id(query)
        if owner_id:
            return [self._instance("Owner", mappers.to_owner(await self.http.get(f"{OWNERS_PATH}/{owner_id}")))]
        return await self._list_owners()

    # ── Subscriptions ─────────────────────────────────────────────────────

    def _poll(self, entity: str, fetch: Fetcher, sink: SubscriptionSink) -> Awaitable[PollingTask]:
        return self._subscribe(entity, fetch, sink, self.settings.HUBSPOT_POLL_INTERVAL_MINUTES)

    async def subscribe_contacts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("contacts", lambda: self._list(CONTACTS), sink)

    async def subscribe_companies(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("companies", lambda: self._list(COMPANIES), sink)

    async def subscribe_deals(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("deals", lambda: self._list(DEALS), sink)

    async def subscribe_owners(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("owners", self._list_owners, sink)

    async def subscribe_tasks(self, sink: SubscriptionSink) -> PollingTask:
        return await self._poll("tasks", lambda: self._list(TASKS), sink)
