"""In-memory Infoblox WAPI v2.13.1 stand-in for local development and tests.

Implements list/create/delete for host, AAAA, CNAME, MX, TXT and PTR
records and list/get/create/delete for networks, behind Basic auth.
Duplicate creates answer 400 with WAPI's ``Client.Ibap.Data.Conflict``
body, which is what the connector keys its ``AlreadyExists`` result on.

Usage:
    app = create_mock_app()
    transport = httpx.ASGITransport(app=app)
"""

from __future__ import annotations

import ipaddress
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

logger = structlog.get_logger(__name__)

WAPI_BASE = "/wapi/v2.13.1"
RECORD_KINDS = ("host", "aaaa", "cname", "mx", "txt", "ptr")

_DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_ipv4(value: Any) -> bool:
    try:
        return isinstance(ipaddress.ip_address(str(value)), ipaddress.IPv4Address)
    except ValueError:
        return False


def _is_ipv6(value: Any) -> bool:
    try:
        return isinstance(ipaddress.ip_address(str(value)), ipaddress.IPv6Address)
    except ValueError:
        return False


def _is_domain(value: Any) -> bool:
    return isinstance(value, str) and bool(_DOMAIN_RE.match(value))


def _is_cidr(value: Any) -> bool:
    try:
        network = ipaddress.ip_network(str(value), strict=False)
        return "/" in str(value) and isinstance(network, ipaddress.IPv4Network)
    except ValueError:
        return False


def _conflict(text: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "Error": f"AdmConDataError: IB.Data.ConflictError: {text}",
            "code": "Client.Ibap.Data.Conflict",
            "text": text,
        },
    )


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def _validate_record(kind: str, body: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
    """Return ``(error, record_fields)`` for a create request."""
    name = body.get("name")
    if kind == "host":
        v4, v6 = body.get("ipv4addr"), body.get("ipv6addr")
        if not name or not (v4 or v6):
            return "Host records require name and either ipv4addr or ipv6addr", {}
        if not _is_domain(name):
            return "Invalid domain name", {}
        if v4 and not _is_ipv4(v4):
            return "Invalid IPv4 address", {}
        if v6 and not _is_ipv6(v6):
            return "Invalid IPv6 address", {}
        return None, {"name": name, "ipv4addr": v4 or None, "ipv6addr": v6 or None}
    if kind == "aaaa":
        if not name or not body.get("ipv6addr"):
            return "AAAA records require both name and ipv6addr", {}
        if not _is_domain(name):
            return "Invalid domain name", {}
        if not _is_ipv6(body["ipv6addr"]):
            return "Invalid IPv6 address", {}
        return None, {"name": name, "ipv6addr": body["ipv6addr"]}
    if kind == "cname":
        canonical = body.get("canonical")
        if not name or not canonical:
            return "CNAME records require both name and canonical", {}
        if not _is_domain(name) or not _is_domain(canonical):
            return "Invalid domain name", {}
        return None, {"name": name, "canonical": canonical}
    if kind == "mx":
        preference, exchanger = body.get("preference"), body.get("mail_exchanger")
        if not name or preference is None or not exchanger:
            return "MX records require name, preference, and mail_exchanger", {}
        if not _is_domain(name) or not _is_domain(exchanger):
            return "Invalid domain name", {}
        if not isinstance(preference, int) or preference < 0:
            return "Preference must be a non-negative number", {}
        return None, {"name": name, "preference": preference, "mail_exchanger": exchanger}
    if kind == "txt":
        if not name or not body.get("text"):
            return "TXT records require both name and text", {}
        if not _is_domain(name):
            return "Invalid domain name", {}
        return None, {"name": name, "text": body["text"]}
    # ptr
    ptrdname, v4 = body.get("ptrdname"), body.get("ipv4addr")
    if not ptrdname or not v4:
        return "PTR records require both ptrdname and ipv4addr", {}
    if not _is_domain(ptrdname):
        return "Invalid domain name", {}
    if not _is_ipv4(v4):
        return "Invalid IPv4 address", {}
    return None, {"ptrdname": ptrdname, "ipv4addr": v4}


def _duplicate(kind: str, existing: dict[str, Any], fields: dict[str, Any]) -> bool:
    if kind == "host":
        if existing["name"] != fields["name"]:
            return False
        v4, v6 = fields.get("ipv4addr"), fields.get("ipv6addr")
        return bool((v4 and existing.get("ipv4addr") == v4) or (v6 and existing.get("ipv6addr") == v6))
    if kind == "ptr":
        # WAPI allows several PTRs per address.
        return False
    return all(existing.get(k) == v for k, v in fields.items())


def create_mock_app(username: str = "admin", password: str = "infoblox") -> FastAPI:
    """Build a fresh mock with its own empty in-memory store."""
    app = FastAPI(title="Infoblox WAPI mock")
    security = HTTPBasic(auto_error=False)
    networks: list[dict[str, Any]] = []
    records: dict[str, list[dict[str, Any]]] = {kind: [] for kind in RECORD_KINDS}

    def authenticate(credentials: HTTPBasicCredentials | None = Depends(security)) -> None:
        if credentials is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        valid_user = secrets.compare_digest(credentials.username, username)
        valid_password = secrets.compare_digest(credentials.password, password)
        if not (valid_user and valid_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    def _store(kind: str) -> list[dict[str, Any]]:
        if kind not in records:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Endpoint not found")
        return records[kind]

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": _now()}

    # ── Networks ──────────────────────────────────────────────────────────

    @app.get(f"{WAPI_BASE}/network", dependencies=[Depends(authenticate)])
    async def list_networks():
        return {"result": networks}

    @app.post(f"{WAPI_BASE}/network", dependencies=[Depends(authenticate)])
    async def create_network(body: dict[str, Any] = Body(default_factory=dict)):
        network = body.get("network")
        if not network or not _is_cidr(network):
            return _bad_request("Valid network CIDR is required")
        if any(n["network"] == network for n in networks):
            return _conflict(f"This network already exists (network: {network})")
        created = {"id": uuid.uuid4().hex[:9], "network": network, "created_at": _now(), "updated_at": _now()}
        networks.append(created)
        logger.info("mock_network_created", network=network)
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=created)

    @app.get(f"{WAPI_BASE}/network/{{item_id}}", dependencies=[Depends(authenticate)])
    async def get_network(item_id: str):
        for network in networks:
            if network["id"] == item_id:
                return network
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Network not found")

    @app.delete(f"{WAPI_BASE}/network/{{item_id}}", dependencies=[Depends(authenticate)])
    async def delete_network(item_id: str):
        for index, network in enumerate(networks):
            if network["id"] == item_id:
                networks.pop(index)
                return {"message": "Network deleted successfully"}
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Network not found")

    # ── DNS records ───────────────────────────────────────────────────────

    @app.get(f"{WAPI_BASE}/record:{{kind}}", dependencies=[Depends(authenticate)])
    async def list_records(kind: str):
        return {"result": _store(kind)}

    @app.post(f"{WAPI_BASE}/record:{{kind}}", dependencies=[Depends(authenticate)])
    async def create_record(kind: str, body: dict[str, Any] = Body(default_factory=dict)):
        store = _store(kind)
        error, fields = _validate_record(kind, body)
        if error:
            return _bad_request(error)
        if any(_duplicate(kind, existing, fields) for existing in store):
            record_type = kind.upper()
            if kind == "host":
                record_type = "A" if fields.get("ipv4addr") else "AAAA"
            label = fields.get("name") or fields.get("ptrdname")
            return _conflict(f"This record already exists (record name: {label}, type: {record_type})")
        created = {"id": uuid.uuid4().hex[:9], **fields, "created_at": _now(), "updated_at": _now()}
        store.append(created)
        logger.info("mock_record_created", kind=kind, id=created["id"])
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=created)

    @app.delete(f"{WAPI_BASE}/record:{{kind}}/{{item_id}}", dependencies=[Depends(authenticate)])
    async def delete_record(kind: str, item_id: str):
        store = _store(kind)
        for index, record in enumerate(store):
            if record["id"] == item_id:
                store.pop(index)
                return {"message": f"{kind.upper()} record deleted successfully"}
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{kind.upper()} record not found")

    return app


__all__ = ["create_mock_app", "WAPI_BASE"]
