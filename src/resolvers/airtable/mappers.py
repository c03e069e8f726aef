"""Airtable API payloads -> canonical attribute dicts."""

from __future__ import annotations


def to_base(base: dict) -> dict:
    return {
        "id": base.get("id"),
        "name": base.get("name") or "",
        "permission_level": base.get("permissionLevel") or "",
    }


def to_table(table: dict, base_id: str | None) -> dict:
    return {
        "id": table.get("id"),
        "name": table.get("name") or "",
        "description": table.get("description") or "",
        "base_id": base_id or "",
    }


def to_field(field: dict, table_id: str | None) -> dict:
    return {
        "id": field.get("id"),
        "name": field.get("name") or "",
        "type": field.get("type") or "",
        "description": field.get("description") or "",
        "table_id": table_id or "",
    }


def to_record(record: dict, table_id: str | None, base_id: str | None) -> dict:
    return {
        "id": record.get("id"),
        "created_time": record.get("createdTime") or "",
        "fields": record.get("fields") or {},
        "table_id": table_id or "",
        "base_id": base_id or "",
    }
