"""Freshdesk connector: tickets, contacts, companies, agents and groups."""

from __future__ import annotations

from typing import Any, Callable, Mapping

import httpx
import structlog

from src.resolvers.core.auth import basic_auth_header
from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result
from src.resolvers.freshdesk import mappers
from src.resolvers.freshdesk.config import FreshdeskSettings, get_freshdesk_settings

logger = structlog.get_logger(__name__)

PER_PAGE = 100


class FreshdeskResolver(ResolverBase):
    NAMESPACE = "freshdesk"

    def __init__(
        self,
        settings: FreshdeskSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_freshdesk_settings()
        self.http = HttpClient(
            "freshdesk",
            f"{self.settings.portal_url}/api/v2",
            auth=self._auth_headers,
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if not self.settings.FRESHDESK_DOMAIN:
            raise ConfigError("Freshdesk configuration is required: FRESHDESK_DOMAIN")
        if not self.settings.FRESHDESK_API_KEY:
            raise ConfigError("Freshdesk API key is required: FRESHDESK_API_KEY")
        return {"Authorization": basic_auth_header(self.settings.FRESHDESK_API_KEY, "X")}

    def _ticket(self, record: dict) -> dict:
        return mappers.to_ticket(record, self.settings.portal_url)

    async def _list(self, resource: str, entity_type: str, mapper: Callable[[dict], dict]) -> list[Instance]:
        records = await self.http.get(f"/{resource}", params={"per_page": PER_PAGE})
        return self._instances(entity_type, records or [], mapper, limit=PER_PAGE)

    async def _query(
        self,
        query: Mapping[str, Any] | None,
        resource: str,
        entity_type: str,
        mapper: Callable[[dict], dict],
    ) -> list[Instance]:
        record_id = path_id(query)
        if record_id:
            return [self._instance(entity_type, mapper(await self.http.get(f"/{resource}/{record_id}")))]
        return await self._list(resource, entity_type, mapper)

    async def _delete(self, attrs: Mapping[str, Any], resource: str, label: str) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{label} ID is required")
        await self.http.delete(f"/{resource}/{attrs['id']}")

    # ── Tickets ───────────────────────────────────────────────────────────

    async def _post_ticket(self, attrs: Mapping[str, Any]) -> dict:
        if not attrs.get("subject") or not attrs.get("email"):
            raise RequiredFieldError("Subject and email are required")
        return await self.http.post("/tickets", json=mappers.ticket_payload(attrs, creating=True))

    async def _list_tickets(self) -> list[Instance]:
        return await self._list("tickets", "Ticket", self._ticket)

    @returns_result
    async def create_ticket(self, attrs: Mapping[str, Any]) -> Instance:
        return self._instance("Ticket", self._ticket(await self._post_ticket(attrs)))

    @returns_result
    async def query_ticket(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(query, "tickets", "Ticket", self._ticket)

    @returns_result
    async def update_ticket(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Ticket ID is required")
        result = await self.http.put(f"/tickets/{attrs['id']}", json=mappers.ticket_payload(new_attrs, creating=False))
        return self._instance("Ticket", self._ticket(result))

    @returns_result
    async def delete_ticket(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(attrs, "tickets", "Ticket")

    @returns_result
    async def create_ticket_action(self, attrs: Mapping[str, Any]) -> Instance:
        return self._instance("CreateTicketOutput", _ticket_output(await self._post_ticket(attrs)))

    @returns_result
    async def query_create_ticket(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        ticket_id = path_id(query)
        if not ticket_id:
            raise RequiredFieldError("Ticket ID is required")
        return [self._instance("CreateTicketOutput", _ticket_output(await self.http.get(f"/tickets/{ticket_id}")))]

    # ── Contacts ──────────────────────────────────────────────────────────

    async def _post_contact(self, attrs: Mapping[str, Any]) -> dict:
        if not attrs.get("name") or not attrs.get("email"):
            raise RequiredFieldError("Name and email are required")
        return await self.http.post("/contacts", json=mappers.contact_payload(attrs))

    async def _list_contacts(self) -> list[Instance]:
        return await self._list("contacts", "Contact", mappers.to_contact)

    @returns_result
    async def create_contact(self, attrs: Mapping[str, Any]) -> Instance:
        return self._instance("Contact", mappers.to_contact(await self._post_contact(attrs)))

    @returns_result
    async def query_contact(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(query, "contacts", "Contact", mappers.to_contact)

    @returns_result
    async def update_contact(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Contact ID is required")
        result = await self.http.put(f"/contacts/{attrs['id']}", json=mappers.contact_payload(new_attrs))
        return self._instance("Contact", mappers.to_contact(result))

    @returns_result
    async def delete_contact(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(attrs, "contacts", "Contact")

    @returns_result
    async def create_contact_action(self, attrs: Mapping[str, Any]) -> Instance:
        return self._instance("CreateContactOutput", _contact_output(await self._post_contact(attrs)))

    @returns_result
    async def query_create_contact(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        contact_id = path_id(query)
        if not contact_id:
            raise RequiredFieldError("Contact ID is required")
        contact = await self.http.get(f"/contacts/{contact_id}")
        return [self._instance("CreateContactOutput", _contact_output(contact))]

    # ── Agents / Groups (read-only) ───────────────────────────────────────

    async def _list_agents(self) -> list[Instance]:
        return await self._list("agents", "Agent", mappers.to_agent)

    async def _list_groups(self) -> list[Instance]:
        return await self._list("groups", "Group", mappers.to_group)

    @returns_result
    async def query_agent(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(query, "agents", "Agent", mappers.to_agent)

    @returns_result
    async def query_group(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(query, "groups", "Group", mappers.to_group)

    # ── Companies ─────────────────────────────────────────────────────────

    async def _list_companies(self) -> list[Instance]:
        return await self._list("companies", "Company", mappers.to_company)

    @returns_result
    async def create_company(self, attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("name"):
            raise RequiredFieldError("Company name is required")
        result = await self.http.post("/companies", json=mappers.company_payload(attrs))
        return self._instance("Company", mappers.to_company(result))

    @returns_result
    async def query_company(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query(query, "companies", "Company", mappers.to_company)

    @returns_result
    async def update_company(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Company ID is required")
        result = await self.http.put(f"/companies/{attrs['id']}", json=mappers.company_payload(new_attrs))
        return self._instance("Company", mappers.to_company(result))

    @returns_result
    async def delete_company(self, attrs: Mapping[str, Any]) -> None:
        await self._delete(attrs, "companies", "Company")

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_tickets(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("tickets", self._list_tickets, sink, self.settings.FRESHDESK_POLL_INTERVAL_MINUTES)

    async def subscribe_contacts(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "contacts", self._list_contacts, sink, self.settings.FRESHDESK_POLL_INTERVAL_MINUTES
        )

    async def subscribe_agents(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("agents", self._list_agents, sink, self.settings.FRESHDESK_POLL_INTERVAL_MINUTES)

    async def subscribe_companies(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "companies", self._list_companies, sink, self.settings.FRESHDESK_POLL_INTERVAL_MINUTES
        )

    async def subscribe_groups(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("groups", self._list_groups, sink, self.settings.FRESHDESK_POLL_INTERVAL_MINUTES)


def _ticket_output(ticket: dict) -> dict:
    return {
        "id": str(ticket.get("id")),
        "subject": ticket.get("subject") or "",
        "status": str(ticket.get("status")),
        "url": ticket.get("url") or "",
    }


def _contact_output(contact: dict) -> dict:
    return {
        "id": str(contact.get("id")),
        "name": contact.get("name") or "",
        "email": contact.get("email") or "",
        "url": contact.get("url") or "",
    }
