"""WAPI records to canonical attributes.

WAPI identifies objects by ``_ref``; the mock server only returns ``id``,
so both are accepted.
"""

from __future__ import annotations

from typing import Any


def ref_of(record: dict[str, Any]) -> Any:
    return record.get("_ref") or record.get("id")


def _stamped(record: dict[str, Any], **fields: Any) -> dict[str, Any]:
    return {
        **fields,
        "_ref": ref_of(record),
        "created_at": record.get("created_at"),
        "updated_at": record.get("updated_at"),
    }


def to_aaaa(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, name=r.get("name"), ipv6addr=r.get("ipv6addr"))


def to_cname(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, name=r.get("name"), canonical=r.get("canonical"))


def to_mx(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, name=r.get("name"), preference=r.get("preference"), mail_exchanger=r.get("mail_exchanger"))


def to_host(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, name=r.get("name"), ipv4addr=r.get("ipv4addr"), ipv6addr=r.get("ipv6addr"))


def to_txt(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, name=r.get("name"), text=r.get("text"))


def to_ptr(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, ptrdname=r.get("ptrdname"), ipv4addr=r.get("ipv4addr"))


def to_network(r: dict[str, Any]) -> dict[str, Any]:
    return _stamped(r, network=r.get("network"))
