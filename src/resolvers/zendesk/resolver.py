"""Zendesk connector: Support (tickets, comments, users, organizations) and Help Center.

Basic auth as ``{email}/token:{api_token}``. Creates answer with the mapped
record (and its id); updates PUT the changed fields and echo the caller's
record back.
"""

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
from src.resolvers.core.result import Success, returns_result
from src.resolvers.zendesk import mappers
from src.resolvers.zendesk.config import ZendeskSettings, get_zendesk_settings

logger = structlog.get_logger(__name__)

PAGE_SIZE = 100
SUBSCRIPTION_PAGE_SIZE = 50
HELP_CENTER_PAGE = {"page[size]": PAGE_SIZE}


def _unwrap(body: Any, key: str) -> dict:
    return body.get(key) or body if isinstance(body, dict) else {}


class ZendeskResolver(ResolverBase):
    NAMESPACE = "zendesk"

    def __init__(
        self,
        settings: ZendeskSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_zendesk_settings()
        self.http = HttpClient(
            "zendesk",
            self.settings.base_url,
            auth=self._auth_headers,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        s = self.settings
        if not (s.ZENDESK_SUBDOMAIN and s.ZENDESK_EMAIL and s.ZENDESK_API_TOKEN):
            raise ConfigError("Zendesk credentials required: ZENDESK_SUBDOMAIN, ZENDESK_EMAIL, ZENDESK_API_TOKEN")
        return {"Authorization": basic_auth_header(f"{s.ZENDESK_EMAIL}/token", s.ZENDESK_API_TOKEN)}

    # ── Shared helpers ────────────────────────────────────────────────────

    def _created(self, entity_type: str, record: dict, mapper: Callable[[dict], dict]) -> Success:
        instance = self._instance(entity_type, mapper(record))
        logger.info("zendesk_record_created", entity=entity_type, id=record.get("id"))
        return Success(value=instance, id=str(record.get("id")) if record.get("id") is not None else None)

    async def _one(self, path: str, key: str, entity_type: str, mapper: Callable[[dict], dict]) -> list[Instance]:
        return [self._instance(entity_type, mapper(_unwrap(await self.http.get(path), key)))]

    async def _many(
        self,
        path: str,
        key: str,
        entity_type: str,
        mapper: Callable[[dict], dict],
        params: dict[str, Any] | None = None,
    ) -> list[Instance]:
        params = params or {}
        body = await self.http.get(path, params=params)
        limit = params.get("per_page") or params.get("page[size]")
        return self._instances(entity_type, body.get(key) or [], mapper, limit=limit)

    @staticmethod
    def _require_id(attrs: Mapping[str, Any], label: str, action: str) -> Any:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{label} ID is required for {action}")
        return attrs["id"]

    # ── Tickets ───────────────────────────────────────────────────────────

    async def _list_tickets(self) -> list[Instance]:
        return await self._many(
            "/tickets.json",
            "tickets",
            "Ticket",
            mappers.to_ticket,
            {"per_page": SUBSCRIPTION_PAGE_SIZE, "sort_by": "updated_at", "sort_order": "desc"},
        )

    @returns_result
    async def create_ticket(self, attrs: Mapping[str, Any]) -> Success:
        body = await self.http.post("/tickets.json", json={"ticket": mappers.ticket_payload(attrs)})
        return self._created("Ticket", _unwrap(body, "ticket"), mappers.to_ticket)

    @returns_result
    async def query_ticket(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        ticket_id = path_id(query)
        if ticket_id:
            return await self._one(f"/tickets/{ticket_id}.json", "ticket", "Ticket", mappers.to_ticket)
        return await self._many("/tickets.json", "tickets", "Ticket", mappers.to_ticket, {"per_page": PAGE_SIZE})

    @returns_result
    async def update_ticket(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        ticket_id = self._require_id(attrs, "Ticket", "update")
        await self.http.put(f"/tickets/{ticket_id}.json", json={"ticket": mappers.ticket_payload(new_attrs)})
        return self._instance("Ticket", attrs)

    @returns_result
    async def delete_ticket(self, attrs: Mapping[str, Any]) -> None:
        ticket_id = self._require_id(attrs, "Ticket", "deletion")
        await self.http.delete(f"/tickets/{ticket_id}.json")

    # ── Ticket comments ───────────────────────────────────────────────────

    @returns_result
    async def add_ticket_comment(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        """Append a comment to ``attrs["ticket_id"]``; public unless ``public`` is False."""
        ticket_id = attrs.get("ticket_id")
        body = new_attrs.get("body")
        if not ticket_id or not body:
            raise RequiredFieldError("Ticket ID and body are required")
        comment = {"body": body, "public": new_attrs.get("public") is not False}
        await self.http.put(f"/tickets/{ticket_id}.json", json={"ticket": {"comment": comment}})
        logger.info("zendesk_comment_added", ticket_id=ticket_id, public=comment["public"])
        return self._instance("TicketComment", mappers.to_comment(comment, ticket_id))

    @returns_result
    async def query_ticket_comments(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        ticket_id = (query or {}).get("ticket_id")
        if not ticket_id:
            raise RequiredFieldError("Ticket ID is required to list comments")
        body = await self.http.get(f"/tickets/{ticket_id}/comments.json")
        return self._instances("TicketComment", body.get("comments") or [], mappers.to_comment, ticket_id)

    # ── Users ─────────────────────────────────────────────────────────────

    @returns_result
    async def create_user(self, attrs: Mapping[str, Any]) -> Success:
        user = mappers.pick(attrs, "name", "email", "organization_id")
        user["role"] = attrs.get("role") or "end-user"
        body = await self.http.post("/users.json", json={"user": user})
        return self._created("User", _unwrap(body, "user"), mappers.to_user)

    @returns_result
    async def query_user(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        user_id = path_id(query)
        if user_id:
            return await self._one(f"/users/{user_id}.json", "user", "User", mappers.to_user)
        return await self._many("/users.json", "users", "User", mappers.to_user, {"per_page": PAGE_SIZE})

    @returns_result
    async def update_user(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        user_id = self._require_id(attrs, "User", "update")
        updates = mappers.pick(new_attrs, "name", "email", "role", "organization_id")
        await self.http.put(f"/users/{user_id}.json", json={"user": updates})
        return self._instance("User", attrs)

    @returns_result
    async def delete_user(self, attrs: Mapping[str, Any]) -> None:
        user_id = self._require_id(attrs, "User", "deletion")
        await self.http.delete(f"/users/{user_id}.json")

    # ── Organizations ─────────────────────────────────────────────────────

    ORGANIZATION_FIELDS = ("name", "details", "notes", "group_id", "shared_tickets", "shared_comments")

    @returns_result
    async def create_organization(self, attrs: Mapping[str, Any]) -> Success:
        org = mappers.pick(attrs, *self.ORGANIZATION_FIELDS)
        body = await self.http.post("/organizations.json", json={"organization": org})
        return self._created("Organization", _unwrap(body, "organization"), mappers.to_organization)

    @returns_result
    async def query_organization(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        org_id = path_id(query)
        if org_id:
            return await self._one(
                f"/organizations/{org_id}.json", "organization", "Organization", mappers.to_organization
            )
        return await self._many(
            "/organizations.json", "organizations", "Organization", mappers.to_organization, {"per_page": PAGE_SIZE}
        )

    @returns_result
    async def update_organization(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        org_id = self._require_id(attrs, "Organization", "update")
        updates = mappers.pick(new_attrs, *self.ORGANIZATION_FIELDS)
        await self.http.put(f"/organizations/{org_id}.json", json={"organization": updates})
        return self._instance("Organization", attrs)

    @returns_result
    async def delete_organization(self, attrs: Mapping[str, Any]) -> None:
        org_id = self._require_id(attrs, "Organization", "deletion")
        await self.http.delete(f"/organizations/{org_id}.json")

    # ── Help Center: categories ───────────────────────────────────────────

    @returns_result
    async def create_category(self, attrs: Mapping[str, Any]) -> Success:
        category = mappers.pick(attrs, "name", "description", "locale")
        body = await self.http.post("/help_center/categories.json", json={"category": category})
        return self._created("Category", _unwrap(body, "category"), mappers.to_category)

    @returns_result
    async def query_category(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        category_id = path_id(query)
        if category_id:
            return await self._one(
                f"/help_center/categories/{category_id}.json", "category", "Category", mappers.to_category
            )
        return await self._many(
            "/help_center/categories.json", "categories", "Category", mappers.to_category, HELP_CENTER_PAGE
        )

    @returns_result
    async def update_category(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        category_id = self._require_id(attrs, "Category", "update")
        updates = mappers.pick(new_attrs, "name", "description", "locale")
        await self.http.put(f"/help_center/categories/{category_id}.json", json={"category": updates})
        return self._instance("Category", attrs)

    @returns_result
    async def delete_category(self, attrs: Mapping[str, Any]) -> None:
        category_id = self._require_id(attrs, "Category", "deletion")
        await self.http.delete(f"/help_center/categories/{category_id}.json")

    # ── Help Center: sections (nested under a category) ───────────────────

    @staticmethod
    def _category_of(attrs: Mapping[str, Any], action: str) -> Any:
        if not attrs.get("category_id"):
            raise RequiredFieldError(f"Category ID is required to {action} a section")
        return attrs["category_id"]

    @returns_result
    async def create_section(self, attrs: Mapping[str, Any]) -> Success:
        category_id = self._category_of(attrs, "create")
        section = mappers.pick(attrs, "name", "description", "category_id", "locale")
        body = await self.http.post(f"/help_center/categories/{category_id}/sections", json={"section": section})
        return self._created("Section", _unwrap(body, "section"), mappers.to_section)

    @returns_result
    async def query_section(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        section_id = path_id(query)
        if section_id:
            return await self._one(f"/help_center/sections/{section_id}.json", "section", "Section", mappers.to_section)
        return await self._many("/help_center/sections.json", "sections", "Section", mappers.to_section, HELP_CENTER_PAGE)

    @returns_result
    async def update_section(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        section_id = self._require_id(attrs, "Section", "update")
        category_id = self._category_of(attrs, "update")
        updates = mappers.pick(new_attrs, "name", "description", "category_id", "locale")
        await self.http.put(
            f"/help_center/categories/{category_id}/sections/{section_id}", json={"section": updates}
        )
        return self._instance("Section", attrs)

    @returns_result
    async def delete_section(self, attrs: Mapping[str, Any]) -> None:
        section_id = self._require_id(attrs, "Section", "deletion")
        category_id = self._category_of(attrs, "delete")
        await self.http.delete(f"/help_center/categories/{category_id}/sections/{section_id}")

    # ── Help Center: articles (nested under a section) ────────────────────

    ARTICLE_FIELDS = (
        "title",
        "body",
        "locale",
        "section_id",
        "author_id",
        "user_segment_id",
        "permission_group_id",
        "comments_disabled",
        "draft",
    )

    @staticmethod
    def _section_of(attrs: Mapping[str, Any], action: str) -> Any:
        if not attrs.get("section_id"):
            raise RequiredFieldError(f"Section ID is required to {action} an article")
        return attrs["section_id"]

    @returns_result
    async def create_article(self, attrs: Mapping[str, Any]) -> Success:
        section_id = self._section_of(attrs, "create")
        article = mappers.pick(attrs, *self.ARTICLE_FIELDS)
        body = await self.http.post(f"/help_center/sections/{section_id}/articles", json={"article": article})
        return self._created("Article", _unwrap(body, "article"), mappers.to_article)

    @returns_result
    async def query_article(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        article_id = path_id(query)
        if article_id:
            return await self._one(f"/help_center/articles/{article_id}.json", "article", "Article", mappers.to_article)
        section_id = (query or {}).get("section_id")
        path = f"/help_center/sections/{section_id}/articles.json" if section_id else "/help_center/articles.json"
        return await self._many(path, "articles", "Article", mappers.to_article, HELP_CENTER_PAGE)

    @returns_result
    async def update_article(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        article_id = self._require_id(attrs, "Article", "update")
        section_id = self._section_of(attrs, "update")
        updates = mappers.pick(new_attrs, *self.ARTICLE_FIELDS)
        await self.http.put(f"/help_center/sections/{section_id}/articles/{article_id}", json={"article": updates})
        return self._instance("Article", attrs)

    @returns_result
    async def delete_article(self, attrs: Mapping[str, Any]) -> None:
        article_id = self._require_id(attrs, "Article", "deletion")
        section_id = self._section_of(attrs, "delete")
        await self.http.delete(f"/help_center/sections/{section_id}/articles/{article_id}")

    # ── Help Center: user segments (read-only) ────────────────────────────

    @returns_result
    async def query_user_segment(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        segment_id = path_id(query)
        if segment_id:
            return await self._one(
                f"/help_center/user_segments/{segment_id}.json", "user_segment", "UserSegment", mappers.to_user_segment
            )
        built_in = (query or {}).get("built_in")
        params = {"built_in": str(built_in).lower()} if built_in is not None else HELP_CENTER_PAGE
        return await self._many(
            "/help_center/user_segments", "user_segments", "UserSegment", mappers.to_user_segment, params
        )

    # ── Guide permission groups ───────────────────────────────────────────

    @returns_result
    async def create_permission_group(self, attrs: Mapping[str, Any]) -> Success:
        group = mappers.permission_group_payload(attrs)
        body = await self.http.post("/guide/permission_groups.json", json={"permission_group": group})
        return self._created("PermissionGroup", _unwrap(body, "permission_group"), mappers.to_permission_group)

    @returns_result
    async def query_permission_group(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        group_id = path_id(query)
        if group_id:
            return await self._one(
                f"/guide/permission_groups/{group_id}.json",
                "permission_group",
                "PermissionGroup",
                mappers.to_permission_group,
            )
        return await self._many(
            "/guide/permission_groups.json",
            "permission_groups",
            "PermissionGroup",
            mappers.to_permission_group,
            HELP_CENTER_PAGE,
        )

    @returns_result
    async def update_permission_group(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        group_id = self._require_id(attrs, "Permission group", "update")
        updates = mappers.permission_group_payload(new_attrs)
        await self.http.put(f"/guide/permission_groups/{group_id}.json", json={"permission_group": updates})
        return self._instance("PermissionGroup", attrs)

    @returns_result
    async def delete_permission_group(self, attrs: Mapping[str, Any]) -> None:
        group_id = self._require_id(attrs, "Permission group", "deletion")
        await self.http.delete(f"/guide/permission_groups/{group_id}.json")

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_tickets(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("tickets", self._list_tickets, sink, self.settings.ZENDESK_POLL_INTERVAL_MINUTES)
