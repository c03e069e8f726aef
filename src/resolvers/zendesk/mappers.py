"""Zendesk Support and Help Center records to canonical attributes.

List-valued fields (tags, id lists) are flattened to comma-separated
strings on the way in and split again on the way out.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from src.resolvers.core.instance import join_csv, split_csv


def _joined(value: Any) -> Any:
    return join_csv(value) if isinstance(value, (list, tuple)) else value


def to_ticket(ticket: dict[str, Any]) -> dict[str, Any]:
    comment = ticket.get("comment")
    return {
        "id": ticket.get("id"),
        "subject": ticket.get("subject"),
        "description": ticket.get("description")
        or (ticket.get("latest_comment") or {}).get("body")
        or (comment or {}).get("body"),
        "status": ticket.get("status"),
        "priority": ticket.get("priority"),
        "type": ticket.get("type"),
        "requester_id": ticket.get("requester_id"),
        "assignee_id": ticket.get("assignee_id"),
        "organization_id": ticket.get("organization_id"),
        "tags": _joined(ticket.get("tags")),
        "comment": {"body": json.dumps(comment)} if comment else None,
        "created_at": ticket.get("created_at"),
        "updated_at": ticket.get("updated_at"),
    }


def to_user(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user.get("id"),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
        "time_zone": user.get("time_zone"),
        "locale": user.get("locale"),
        "organization_id": user.get("organization_id"),
        "active": user.get("active"),
        "created_at": user.get("created_at"),
        "updated_at": user.get("updated_at"),
    }


def to_organization(org: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": org.get("id"),
        "name": org.get("name"),
        "details": org.get("details"),
        "notes": org.get("notes"),
        "group_id": org.get("group_id"),
        "shared_tickets": org.get("shared_tickets"),
        "shared_comments": org.get("shared_comments"),
        "created_at": org.get("created_at"),
        "updated_at": org.get("updated_at"),
    }


def to_category(category: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": category.get("id"),
        "name": category.get("name"),
        "description": category.get("description"),
        "position": category.get("position"),
        "locale": category.get("locale"),
        "created_at": category.get("created_at"),
        "updated_at": category.get("updated_at"),
    }


def to_section(section: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": section.get("id"),
        "name": section.get("name"),
        "description": section.get("description"),
        "category_id": section.get("category_id"),
        "position": section.get("position"),
        "locale": section.get("locale"),
        "created_at": section.get("created_at"),
        "updated_at": section.get("updated_at"),
    }


def to_article(article: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": article.get("id"),
        "title": article.get("title"),
        "body": article.get("body"),
        "locale": article.get("locale"),
        "section_id": article.get("section_id"),
        "author_id": article.get("author_id"),
        "comments_disabled": article.get("comments_disabled"),
        "draft": article.get("draft"),
        "promoted": article.get("promoted"),
        "user_segment_id": article.get("user_segment_id"),
        "permission_group_id": article.get("permission_group_id"),
        "created_at": article.get("created_at"),
        "updated_at": article.get("updated_at"),
    }


def to_user_segment(segment: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": segment.get("id"),
        "name": segment.get("name"),
        "user_type": segment.get("user_type"),
        "group_ids": _joined(segment.get("group_ids")),
        "organization_ids": _joined(segment.get("organization_ids")),
        "tags": _joined(segment.get("tags")),
        "or_tags": _joined(segment.get("or_tags")),
        "added_user_ids": _joined(segment.get("added_user_ids")),
        "built_in": segment.get("built_in"),
        "created_at": segment.get("created_at"),
        "updated_at": segment.get("updated_at"),
    }


def to_permission_group(group: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": group.get("id"),
        "name": group.get("name"),
        "publish": _joined(group.get("publish")),
        "edit": _joined(group.get("edit")),
        "built_in": group.get("built_in"),
        "created_at": group.get("created_at"),
        "updated_at": group.get("updated_at"),
    }


def to_comment(comment: dict[str, Any], ticket_id: Any) -> dict[str, Any]:
    return {
        "id": comment.get("id"),
        "ticket_id": ticket_id,
        "author_id": comment.get("author_id"),
        "body": comment.get("body"),
        "public": comment.get("public"),
        "created_at": comment.get("created_at"),
    }


# ── Outbound ──────────────────────────────────────────────────────────────


def normalize_tags(value: Any) -> list[str] | None:
    if not value:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    return split_csv(value)


def normalize_id_list(value: Any) -> list[int] | None:
    if not value:
        return None
    ids = []
    for item in split_csv(value):
        try:
            ids.append(int(item))
        except (TypeError, ValueError):
            continue
    return ids


def pick(attrs: Mapping[str, Any], *names: str) -> dict[str, Any]:
    """Keys from ``names`` that are present in ``attrs`` (None counts as absent)."""
    return {name: attrs[name] for name in names if attrs.get(name) is not None}


TICKET_FIELDS = ("subject", "status", "priority", "type", "requester_id", "assignee_id", "organization_id")


def ticket_payload(attrs: Mapping[str, Any]) -> dict[str, Any]:
    payload = pick(attrs, *TICKET_FIELDS)
    if attrs.get("description") is not None:
        payload["comment"] = {"body": attrs["description"]}
    if attrs.get("comment") is not None:
        payload["comment"] = attrs["comment"]
    tags = normalize_tags(attrs.get("tags"))
    if tags is not None:
        payload["tags"] = tags
    return payload


def permission_group_payload(attrs: Mapping[str, Any]) -> dict[str, Any]:
    payload = pick(attrs, "name")
    for key in ("publish", "edit"):
        ids = normalize_id_list(attrs.get(key))
        if ids is not None:
            payload[key] = ids
    return payload
