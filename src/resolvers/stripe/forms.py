"""Stripe's form encoding: nested dicts and lists flatten to ``a[b][0]=v``."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping


def clean(value: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop None values, and nested dicts or lists left empty after cleaning.

    Datetimes become unix seconds.
    """
    cleaned: dict[str, Any] = {}
    for key, item in (value or {}).items():
        if item is None:
            continue
        if isinstance(item, (list, tuple)):
            items = [clean(i) if isinstance(i, Mapping) else i for i in item]
            items = [i for i in items if i is not None]
            if items:
                cleaned[key] = items
        elif isinstance(item, datetime):
            cleaned[key] = int(item.timestamp())
        elif isinstance(item, Mapping):
            nested = clean(item)
            if nested:
                cleaned[key] = nested
        else:
            cleaned[key] = item
    return cleaned


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return str(int(value.timestamp()))
    return str(value)


def _flatten(prefix: str, value: Any, out: list[tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten(f"{prefix}[{index}]", item, out)
    elif isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, out)
    else:
        out.append((prefix, _scalar(value)))


def encode(data: Mapping[str, Any] | None) -> dict[str, str] | None:
    """Flatten ``data`` into form fields, or None when nothing is left to send.

    >>> encode({"metadata": {"plan": "pro"}, "items": [{"price": "p_1"}], "active": False})
    {'metadata[plan]': 'pro', 'items[0][price]': 'p_1', 'active': 'false'}
    """
    pairs: list[tuple[str, str]] = []
    for key, value in clean(data).items():
        _flatten(key, value, pairs)
    return dict(pairs) or None
