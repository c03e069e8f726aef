"""Infoblox connector tests, run against the in-memory WAPI mock over ASGI."""

from __future__ import annotations

import httpx
import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.infoblox.config import InfobloxSettings
from src.resolvers.infoblox.mockapi import WAPI_BASE, create_mock_app
from src.resolvers.infoblox.resolver import ALREADY_EXISTS, InfobloxResolver


def _resolver(app, **overrides) -> InfobloxResolver:
    values = {
        "INFOBLOX_BASE_URL": f"http://wapi.test{WAPI_BASE}",
        "INFOBLOX_USERNAME": "admin",
        "INFOBLOX_PASSWORD": "infoblox",
        **overrides,
    }
    return InfobloxResolver(InfobloxSettings(_env_file=None, **values), transport=httpx.ASGITransport(app=app))


@pytest.fixture
def app():
    return create_mock_app()


@pytest.fixture
def resolver(app):
    return _resolver(app)


# ── Records ───────────────────────────────────────────────────────────────


class TestRecords:
    @pytest.mark.asyncio
    async def test_create_then_query_aaaa(self, resolver):
        created = await resolver.create_aaaa({"name": "v6.example.com", "ipv6addr": "2001:db8::1"})
        assert created.ok

        result = await resolver.query_aaaa()
        record = result.value[0].attributes
        assert record["name"] == "v6.example.com"
        assert record["ipv6addr"] == "2001:db8::1"
        assert record["_ref"]

    @pytest.mark.asyncio
    async def test_duplicate_create_is_already_exists(self, resolver):
        attrs = {"name": "www.example.com", "canonical": "lb.example.com"}
        assert (await resolver.create_cname(attrs)).ok

        again = await resolver.create_cname(attrs)
        assert again.ok is False
        assert again.code == ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_host_identity_is_name_plus_any_address(self, resolver):
        assert (await resolver.create_host({"name": "h.example.com", "ipv4addr": "10.0.0.5"})).ok
        dup = await resolver.create_host({"name": "h.example.com", "ipv4addr": "10.0.0.5", "ipv6addr": "2001:db8::5"})
        other = await resolver.create_host({"name": "h.example.com", "ipv4addr": "10.0.0.6"})

        assert dup.code == ALREADY_EXISTS
        assert other.ok

    @pytest.mark.asyncio
    async def test_server_conflict_maps_to_already_exists(self, vendor):
        # The lookup finds nothing, but a concurrent writer got there first
        vendor.add("GET", f"{WAPI_BASE}/record:mx", {"result": []})
        vendor.add(
            "POST",
            f"{WAPI_BASE}/record:mx",
            {"Error": "AdmConDataError", "code": "Client.Ibap.Data.Conflict", "text": "exists"},
            status=400,
        )
        resolver = InfobloxResolver(
            InfobloxSettings(INFOBLOX_BASE_URL=f"http://wapi.test{WAPI_BASE}", _env_file=None),
            transport=vendor.transport,
        )
        result = await resolver.create_mx({"name": "example.com", "preference": "10", "mail_exchanger": "mx.example.com"})

        assert result.code == ALREADY_EXISTS
        assert result.status == 400
        assert vendor.json(vendor.last("POST"))["preference"] == 10

    @pytest.mark.asyncio
    async def test_mx_preference_is_coerced(self, resolver):
        assert (await resolver.create_mx({"name": "example.com", "preference": "20", "mail_exchanger": "mx.example.com"})).ok
        result = await resolver.query_mx({"name": "example.com"})
        assert result.value[0]["preference"] == 20

    @pytest.mark.asyncio
    async def test_invalid_record_is_other(self, resolver):
        result = await resolver.create_txt({"name": "bad_name!", "text": "v=spf1"})
        assert result.ok is False
        assert result.code == "other"

    @pytest.mark.asyncio
    async def test_missing_lookup_field_is_other(self, resolver):
        result = await resolver.create_ptr({"ipv4addr": "10.0.0.1"})
        assert result.kind is ErrorKind.validation
        assert result.code == "other"

    @pytest.mark.asyncio
    async def test_delete_accepts_ref_alias(self, resolver):
        await resolver.create_txt({"name": "t.example.com", "text": "hello"})
        ref = (await resolver.query_txt()).value[0]["_ref"]

        assert (await resolver.delete_txt({"ref": ref})).ok
        assert (await resolver.query_txt()).value == []

    @pytest.mark.asyncio
    async def test_delete_unknown_ref_is_other(self, resolver):
        result = await resolver.delete_aaaa({"_ref": "missing"})
        assert result.code == "other"
        assert result.status == 404


# ── Networks ──────────────────────────────────────────────────────────────


class TestNetworks:
    @pytest.mark.asyncio
    async def test_query_by_path_ref(self, resolver):
        await resolver.create_network({"network": "10.1.0.0/16"})
        ref = (await resolver.query_network()).value[0]["_ref"]

        result = await resolver.query_network({"__path__": f"infoblox$Network/{ref}"})
        assert [n["network"] for n in result.value] == ["10.1.0.0/16"]

    @pytest.mark.asyncio
    async def test_duplicate_network(self, resolver):
        await resolver.create_network({"network": "10.2.0.0/24"})
        assert (await resolver.create_network({"network": "10.2.0.0/24"})).code == ALREADY_EXISTS


@pytest.mark.asyncio
async def test_bad_credentials_are_other(app):
    resolver = _resolver(app, INFOBLOX_PASSWORD="wrong")
    result = await resolver.query_host()
    assert result.code == "other"
    assert result.status == 401


@pytest.mark.asyncio
async def test_missing_base_url_is_config_failure(app):
    resolver = _resolver(app, INFOBLOX_BASE_URL="")
    result = await resolver.query_cname()
    assert result.kind is ErrorKind.config


@pytest.mark.asyncio
async def test_hosts_subscription(resolver, sink):
    await resolver.create_host({"name": "poll.example.com", "ipv4addr": "10.9.9.9"})
    task = await resolver.subscribe_hosts(sink)
    task.stop()
    assert [i["name"] for i in sink.instances] == ["poll.example.com"]


@pytest.mark.asyncio
async def test_mock_health(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://wapi.test") as client:
        response = await client.get("/health")
    assert response.json()["status"] == "healthy"
