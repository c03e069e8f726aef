"""Property maps between canonical attributes and HubSpot CRM properties.

Each map is ``canonical name -> HubSpot property``. Outbound payloads use it
as-is; inbound records use the reverse, keeping unmapped properties under
their HubSpot names.
"""

from __future__ import annotations

from typing import Any, Mapping

CONTACT_PROPERTIES = {
    "first_name": "firstname",
    "last_name": "lastname",
    "email": "email",
    "job_title": "jobtitle",
    "last_contacted": "lastcontacted",
    "last_activity_date": "lastactivitydate",
    "lead_status": "hs_lead_status",
    "lifecycle_stage": "lifecyclestage",
    "salutation": "salutation",
    "mobile_phone_number": "mobilephone",
    "website_url": "website",
    "owner": "hubspot_owner_id",
}

COMPANY_PROPERTIES = {
    "name": "name",
    "industry": "industry",
    "description": "description",
    "country": "country",
    "city": "city",
    "lead_status": "hs_lead_status",
    "lifecycle_stage": "lifecyclestage",
    "owner": "hubspot_owner_id",
    "year_founded": "founded_year",
    "website_url": "website",
}

DEAL_PROPERTIES = {
    "deal_name": "dealname",
    "deal_stage": "dealstage",
    "amount": "amount",
    "close_date": "closedate",
    "deal_type": "dealtype",
    "description": "description",
    "owner": "hubspot_owner_id",
    "pipeline": "pipeline",
    "priority": "priority",
}

TASK_PROPERTIES = {
    "task_type": "hs_task_type",
    "title": "hs_task_subject",
    "priority": "hs_task_priority",
    "assigned_to": "hs_task_assigned_to",
    "due_date": "hs_task_due_date",
    "status": "hs_task_status",
    "description": "hs_task_body",
    "owner": "hubspot_owner_id",
}


def to_properties(attrs: Mapping[str, Any], property_map: Mapping[str, str]) -> dict[str, Any]:
    """Build a ``{"properties": {...}}`` body, skipping absent attributes."""
    properties = {
        hs_name: attrs.get(name) for name, hs_name in property_map.items() if attrs.get(name) is not None
    }
    return {"properties": properties}


def from_properties(record: Mapping[str, Any], property_map: Mapping[str, str]) -> dict[str, Any]:
    reverse = {hs_name: name for name, hs_name in property_map.items()}
    result: dict[str, Any] = {"id": record.get("id")}
    for hs_name, value in (record.get("properties") or {}).items():
        result[reverse.get(hs_name, hs_name)] = value
    result["created_at"] = record.get("createdAt")
    result["updated_at"] = record.get("updatedAt")
    result["archived"] = record.get("archived", False)
    return result


def to_contact(record: Mapping[str, Any]) -> dict[str, Any]:
    return from_properties(record, CONTACT_PROPERTIES)


def to_company(record: Mapping[str, Any]) -> dict[str, Any]:
    return from_properties(record, COMPANY_PROPERTIES)


def to_deal(record: Mapping[str, Any]) -> dict[str, Any]:
    return from_properties(record, DEAL_PROPERTIES)


def to_task(record: Mapping[str, Any]) -> dict[str, Any]:
    return from_properties(record, TASK_PROPERTIES)


def to_owner(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": record.get("id"),
        "email": record.get("email"),
        "first_name": record.get("firstName"),
        "last_name": record.get("lastName"),
        "user_id": record.get("userId"),
        "created_at": record.get("createdAt"),
        "updated_at": record.get("updatedAt"),
        "archived": record.get("archived", False),
    }
