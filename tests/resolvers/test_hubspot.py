"""Tests for the HubSpot CRM connector."""

from __future__ import annotations

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.hubspot.config import HubSpotSettings
from src.resolvers.hubspot.mappers import CONTACT_PROPERTIES, DEAL_PROPERTIES, from_properties, to_properties
from src.resolvers.hubspot.resolver import HubSpotResolver

CONTACTS = "/crm/v3/objects/contacts"


@pytest.fixture
def resolver(vendor):
    return HubSpotResolver(HubSpotSettings(HUBSPOT_ACCESS_TOKEN="pat-na1", _env_file=None), transport=vendor.transport)


class TestPropertyMaps:
    def test_outbound_skips_absent_attributes(self):
        body = to_properties({"first_name": "Ada", "email": "ada@example.com", "job_title": None}, CONTACT_PROPERTIES)
        assert body == {"properties": {"firstname": "Ada", "email": "ada@example.com"}}

    def test_inbound_reverses_names_and_keeps_unknown_properties(self):
        record = {
            "id": "51",
            "properties": {"dealname": "Renewal", "amount": "1200", "hs_object_id": "51"},
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-02-01T00:00:00Z",
        }
        mapped = from_properties(record, DEAL_PROPERTIES)

        assert mapped["deal_name"] == "Renewal"
        assert mapped["amount"] == "1200"
        assert mapped["hs_object_id"] == "51"
        assert mapped["archived"] is False
        assert mapped["updated_at"] == "2024-02-01T00:00:00Z"


class TestContacts:
    @pytest.mark.asyncio
    async def test_create_returns_success_with_id(self, resolver, vendor):
        vendor.add("POST", CONTACTS, {"id": 101, "properties": {}})
        result = await resolver.create_contact({"first_name": "Ada", "owner": "7"})

        assert result.ok and result.id == "101"
        assert vendor.json(vendor.last("POST")) == {"properties": {"firstname": "Ada", "hubspot_owner_id": "7"}}
        assert vendor.last("POST").headers["Authorization"] == "Bearer pat-na1"

    @pytest.mark.asyncio
    async def test_query_by_path_id(self, resolver, vendor):
        vendor.add("GET", f"{CONTACTS}/101", {"id": "101", "properties": {"firstname": "Ada"}})
        result = await resolver.query_contact({"__path__": "hubspot/Contact/101"})
        assert result.value[0]["first_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_update_requires_id(self, resolver, vendor):
        result = await resolver.update_contact({}, {"first_name": "A"})
        assert result.kind is ErrorKind.validation
        assert "Contact ID" in result.message

    @pytest.mark.asyncio
    async def test_update_patches_mapped_properties(self, resolver, vendor):
        vendor.add("PATCH", f"{CONTACTS}/101", {"id": "101", "properties": {"lastname": "Lovelace"}})
        result = await resolver.update_contact({"id": "101"}, {"last_name": "Lovelace"})
        assert vendor.json(vendor.last("PATCH")) == {"properties": {"lastname": "Lovelace"}}
        assert result.value["last_name"] == "Lovelace"

    @pytest.mark.asyncio
    async def test_delete(self, resolver, vendor):
        vendor.add("DELETE", f"{CONTACTS}/101", status=204)
        result = await resolver.delete_contact({"id": "101"})
        assert result.ok
        assert vendor.last().method == "DELETE"


@pytest.mark.asyncio
async def test_missing_token_is_config_failure(vendor):
    resolver = HubSpotResolver(HubSpotSettings(_env_file=None), transport=vendor.transport)
    result = await resolver.query_deal()
    assert result.kind is ErrorKind.config
    assert vendor.requests == []


@pytest.mark.asyncio
async def test_rate_limit_surfaces_http_status(resolver, vendor):
    vendor.add("GET", "/crm/v3/objects/tasks", {"status": "error", "message": "rate limited"}, status=429)
    result = await resolver.query_task()
    assert result.kind is ErrorKind.http_status
    assert result.status == 429


@pytest.mark.asyncio
async def test_owners_subscription(resolver, vendor, sink):
    vendor.add("GET", "/crm/v3/owners", {"results": [{"id": "7", "email": "o@example.com", "firstName": "Olu"}]})
    task = await resolver.subscribe_owners(sink)
    task.stop()

    owner = sink.instances[0]
    assert owner.path == "hubspot/Owner"
    assert owner["first_name"] == "Olu"
