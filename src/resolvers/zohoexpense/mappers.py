"""Zoho Expense record mappers.

Zoho Expense is inconsistent about key names across endpoints and API
versions, so each mapper accepts the known aliases.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any, Iterable, Mapping

from src.resolvers.core.instance import to_float

REPORT_KEYS = ("report_id", "report_name", "description", "report_number", "start_date", "end_date", "status")
EXPENSE_FILTERS = ("status", "employee_id", "report_id", "page", "per_page", "from", "to", "updated_time")

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".heic": "image/heic",
}


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _first_set(record: Mapping[str, Any], *keys: str) -> Any:
    """Like ``_first`` but keeps falsy values such as ``False`` and ``0``."""
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def to_expense(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _first(record, "expense_id", "id"),
        "report_id": _first(record, "report_id", "reportId"),
        "amount": to_float(_first_set(record, "amount", "amount_with_tax", "total")),
        "currency": _first(record, "currency_code", "currency"),
        "description": _first(record, "description", "notes"),
        "status": _first(record, "status", "review_status"),
        "created_time": _first(record, "created_time", "created_at", "created_date"),
        "updated_time": _first(record, "updated_time", "updated_at", "last_modified_time"),
        "merchant": _first(record, "merchant", "vendor_name"),
        "category": _first(record, "category_name", "category"),
    }


def to_report(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _first(record, "report_id", "id"),
        "report_name": _first(record, "report_name", "name"),
        "status": _first(record, "status", "review_status"),
        "start_date": record.get("start_date"),
        "end_date": record.get("end_date"),
    }


def to_currency(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _first(record, "currency_id", "id"),
        "code": _first(record, "currency_code", "code"),
        "name": _first(record, "currency_name", "name"),
        "symbol": _first(record, "currency_symbol", "symbol"),
        "is_base": _first_set(record, "is_base_currency", "is_base"),
        "exchange_rate": to_float(_first_set(record, "exchange_rate", "exchangeRate")),
    }


def to_expense_category(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _first(record, "category_id", "id"),
        "name": _first(record, "category_name", "name"),
        "status": record.get("status"),
        "is_active": _first_set(record, "is_active", "active"),
        "type": _first(record, "type", "category_type"),
    }


def report_view(record: Mapping[str, Any]) -> dict[str, Any]:
    """The subset of a report exposed by report queries."""
    return {k: record[k] for k in REPORT_KEYS if record.get(k) is not None}


def matches(record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(str(record.get(k)) == str(v) for k, v in filters.items())


def filters(query: Mapping[str, Any] | None, keys: Iterable[str]) -> dict[str, Any]:
    """Keep the truthy values of ``keys`` from a query."""
    query = query or {}
    return {k: query[k] for k in keys if query.get(k)}


def _with_fields(attrs: Mapping[str, Any], fields: Mapping[str, Any]) -> dict[str, Any]:
    payload = dict(attrs.get("payload") or {})
    payload.update({k: v for k, v in fields.items() if v not in (None, "")})
    return payload


def expense_payload(attrs: Mapping[str, Any]) -> dict[str, Any]:
    """Build a create-expense body: ``payload`` overlaid with the known fields."""
    return _with_fields(
        attrs,
        {
            "amount": to_float(attrs.get("amount")),
            "currency_id": attrs.get("currency_id"),
            "description": attrs.get("description"),
            "date": attrs.get("date"),
            "merchant": attrs.get("merchant"),
            "category_id": attrs.get("category_id"),
            "report_id": attrs.get("report_id"),
            "reference_number": attrs.get("reference_number"),
            "exchange_rate": to_float(attrs.get("exchange_rate")),
        },
    )


def report_payload(attrs: Mapping[str, Any]) -> dict[str, Any]:
    return _with_fields(attrs, {k: attrs.get(k) for k in ("report_name", "description", "start_date", "end_date")})


def normalize_expense_id(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        found = value.get("expense_id") or value.get("id")
        return str(found) if found else None
    return None


def existing_expense_ids(report: Mapping[str, Any]) -> list[str]:
    """Expense ids already attached to a report, from ``expenses`` or ``expense_ids``."""
    expenses = report.get("expenses")
    if isinstance(expenses, list):
        raw: Iterable[Any] = expenses
    elif report.get("expense_ids"):
        ids = report["expense_ids"]
        raw = ids if isinstance(ids, list) else str(ids).split(",")
    else:
        raw = []
    return [i for i in (normalize_expense_id(v) for v in raw) if i]


def guess_mime_type(file_name: str) -> str:
    return MIME_TYPES.get(PurePath(file_name).suffix.lower(), "application/octet-stream")
