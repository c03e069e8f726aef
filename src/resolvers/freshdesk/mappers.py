"""Freshdesk v2 payloads <-> canonical attribute dicts.

Freshdesk ids and enum codes (status, priority, source) are integers on the
wire and strings in the canonical shape; list fields are comma-joined.
"""

from __future__ import annotations

from typing import Any, Mapping

from src.resolvers.core.instance import join_csv, split_csv, to_int


def _id_str(value: Any) -> str:
    return str(value) if value else ""


def to_ticket(ticket: dict, base_url: str) -> dict:
    return {
        "id": str(ticket.get("id")),
        "created_at": ticket.get("created_at") or "",
        "updated_at": ticket.get("updated_at") or "",
        "subject": ticket.get("subject") or "",
        "description": ticket.get("description_text") or ticket.get("description") or "",
        "status": str(ticket.get("status")),
        "priority": str(ticket.get("priority")),
        "type": ticket.get("type") or "",
        "source": str(ticket.get("source")),
        "requester_id": _id_str(ticket.get("requester_id")),
        "responder_id": _id_str(ticket.get("responder_id")),
        "group_id": _id_str(ticket.get("group_id")),
        "company_id": _id_str(ticket.get("company_id")),
        "tags": join_csv(ticket.get("tags")),
        "url": ticket.get("url") or "",
        "web_url": ticket.get("web_url") or f"{base_url}/a/tickets/{ticket.get('id')}",
    }


def to_contact(contact: dict) -> dict:
    return {
        "id": str(contact.get("id")),
        "created_at": contact.get("created_at") or "",
        "updated_at": contact.get("updated_at") or "",
        "name": contact.get("name") or "",
        "email": contact.get("email") or "",
        "phone": contact.get("phone") or "",
        "mobile": contact.get("mobile") or "",
        "company_id": _id_str(contact.get("company_id")),
        "job_title": contact.get("job_title") or "",
        "active": contact.get("active") or False,
        "address": contact.get("address") or "",
    }


def to_agent(agent: dict) -> dict:
    # Agent profile fields live under "contact" in the v2 API.
    contact = agent.get("contact") or {}
    return {
        "id": str(agent.get("id")),
        "created_at": agent.get("created_at") or "",
        "updated_at": agent.get("updated_at") or "",
        "email": agent.get("email") or contact.get("email") or "",
        "name": agent.get("name") or contact.get("name") or "",
        "active": agent.get("active") or contact.get("active") or False,
        "job_title": agent.get("job_title") or contact.get("job_title") or "",
        "phone": agent.get("phone") or contact.get("phone") or "",
        "mobile": agent.get("mobile") or contact.get("mobile") or "",
        "time_zone": agent.get("time_zone") or contact.get("time_zone") or "",
        "role": agent.get("role") or "",
    }


def to_company(company: dict) -> dict:
    return {
        "id": str(company.get("id")),
        "created_at": company.get("created_at") or "",
        "updated_at": company.get("updated_at") or "",
        "name": company.get("name") or "",
        "description": company.get("description") or "",
        "note": company.get("note") or "",
        "domains": join_csv(company.get("domains")),
        "industry": company.get("industry") or "",
        "custom_fields": company.get("custom_fields") or {},
    }


def to_group(group: dict) -> dict:
    return {
        "id": str(group.get("id")),
        "created_at": group.get("created_at") or "",
        "updated_at": group.get("updated_at") or "",
        "name": group.get("name") or "",
        "description": group.get("description") or "",
        "agent_ids": join_csv(group.get("agent_ids")),
    }


# ── Outbound payloads ─────────────────────────────────────────────────────

_TICKET_INT_FIELDS = ("group_id", "responder_id", "company_id")


def ticket_payload(attrs: Mapping[str, Any], *, creating: bool) -> dict:
    """Build a ticket body from whichever attributes are set."""
    data: dict[str, Any] = {}
    if creating:
        data = {"subject": attrs["subject"], "email": attrs["email"], "description": attrs.get("description") or ""}
    else:
        for key in ("subject", "description"):
            if attrs.get(key):
                data[key] = attrs[key]
    if attrs.get("priority"):
        data["priority"] = to_int(attrs["priority"], 1)
    if attrs.get("status"):
        data["status"] = to_int(attrs["status"], 2)
    if attrs.get("type"):
        data["type"] = attrs["type"]
    if attrs.get("tags"):
        data["tags"] = split_csv(attrs["tags"])
    for key in _TICKET_INT_FIELDS:
        if attrs.get(key):
            data[key] = to_int(attrs[key])
    return data


def contact_payload(attrs: Mapping[str, Any]) -> dict:
    data = {k: attrs[k] for k in ("name", "email", "phone", "mobile", "job_title", "address") if attrs.get(k)}
    if attrs.get("company_id"):
        data["company_id"] = to_int(attrs["company_id"])
    return data


def company_payload(attrs: Mapping[str, Any]) -> dict:
    data = {k: attrs[k] for k in ("name", "description", "note", "industry") if attrs.get(k)}
    if attrs.get("domains"):
        data["domains"] = split_csv(attrs["domains"])
    return data
