"""ServiceNow table rows to normalized records, and update payloads back.

Incidents carry custom ``u_ai_*`` columns that an agent fills in; the
canonical names are the keys of ``INCIDENT_FIELD_MAP``.
"""

from __future__ import annotations

from typing import Any, Mapping

INCIDENT_FIELD_MAP = {
    "category": "u_ai_category",
    "ai_status": "u_ai_status",
    "ai_processor": "u_ai_processor",
    "requires_human": "u_ai_requires_human",
    "ai_reason": "u_ai_reason",
    "resolution": "u_ai_resolution",
}

# Journal entries this short are usually boilerplate ("Updated", "ok").
MIN_COMMENT_LENGTH = 15


def to_bool(value: Any) -> bool:
    if value in (True, "true", 1, "1"):
        return True
    if value in (False, "false", 0, "0", None):
        return False
    return bool(value)


def join_comments(entries: list[dict] | None) -> str:
    text = ""
    for entry in entries or []:
        value = entry.get("value") or ""
        if len(value) > MIN_COMMENT_LENGTH:
            text = f"{text}\n{value}"
    return text


def to_record(row: Mapping[str, Any], comments: list[dict] | None = None) -> dict[str, Any]:
    """Normalize one table row.

    ``comments`` is the row's journal (incidents only). Without a journal
    the row's own description stands in for the comment text.
    """
    text = row.get("description") if comments is None else join_comments(comments)
    description = "\n".join(part for part in (row.get("short_description"), text) if part)
    return {
        "short_description": row.get("short_description"),
        "comments": text,
        "description": description,
        "category": row.get("u_ai_category") or None,
        "ai_status": row.get("u_ai_status") or None,
        "ai_processor": row.get("u_ai_processor") or None,
        "requires_human": to_bool(row.get("u_ai_requires_human")),
        "ai_reason": row.get("u_ai_reason") or None,
        "resolution": row.get("u_ai_resolution") or None,
        "active": row.get("active"),
        "number": row.get("number"),
        "opened_at": row.get("opened_at"),
        "sys_class_name": row.get("sys_class_name"),
        "sys_created_by": row.get("sys_created_by"),
        "sys_created_on": row.get("sys_created_on"),
        "sys_id": row.get("sys_id"),
        "state": row.get("state"),
        "state_display": row.get("state_display") or row.get("state"),
    }


def normalize_update(data: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy ``data`` and rename ``comment``/``work_note`` to their column names."""
    payload = dict(data) if isinstance(data, Mapping) else {}
    if "comment" in payload and "comments" not in payload:
        payload["comments"] = payload.pop("comment")
    if "work_note" in payload and "work_notes" not in payload:
        payload["work_notes"] = payload.pop("work_note")
    return payload


def update_payload(new_attrs: Mapping[str, Any], *, incident: bool) -> dict[str, Any]:
    """Build a PATCH body from ``new_attrs["data"]`` plus direct AI fields.

    Direct attributes win over the same field inside ``data``.
    """
    payload = normalize_update(new_attrs.get("data"))
    if not incident:
        return payload
    for name, column in INCIDENT_FIELD_MAP.items():
        if new_attrs.get(name) is not None:
            payload[column] = new_attrs[name]
    for name, column in INCIDENT_FIELD_MAP.items():
        if name in payload:
            value = payload.pop(name)
            payload.setdefault(column, value)
    return payload
