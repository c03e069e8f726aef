"""Tests for the Zoho CRM connector and the shared Zoho OAuth helper."""

from __future__ import annotations

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.zoho.config import ZohoCRMSettings
from src.resolvers.zoho.mappers import CONTACT_FIELDS, build_record, lookup_field, to_deal
from src.resolvers.zoho.resolver import ZohoCRMResolver

CRM = "/crm/v2"
TOKEN = "/oauth/v2/token"


def _resolver(vendor, **overrides):
    return ZohoCRMResolver(ZohoCRMSettings(_env_file=None, **overrides), transport=vendor.transport)


@pytest.fixture
def resolver(vendor):
    return _resolver(vendor, ZOHO_CRM_ACCESS_TOKEN="1000.direct")


# ── Auth ──────────────────────────────────────────────────────────────────


class TestOAuth:
    @pytest.mark.asyncio
    async def test_direct_token_and_org_header(self, vendor):
        vendor.add("GET", f"{CRM}/Leads", {"data": []})
        resolver = _resolver(vendor, ZOHO_CRM_ACCESS_TOKEN="1000.direct", ZOHO_CRM_ORG_ID="org42")
        await resolver.query_lead()

        request = vendor.last("GET")
        assert request.headers["Authorization"] == "Zoho-oauthtoken 1000.direct"
        assert request.headers["X-ZOHO-ORGID"] == "org42"
        assert vendor.calls("POST", TOKEN) == []

    @pytest.mark.asyncio
    async def test_refresh_grant_preferred_over_auth_code(self, vendor):
        vendor.add("POST", TOKEN, {"access_token": "1000.fresh", "expires_in": 3600})
        vendor.add("GET", f"{CRM}/Deals", {"data": []})
        resolver = _resolver(
            vendor,
            ZOHO_CRM_CLIENT_ID="cid",
            ZOHO_CRM_CLIENT_SECRET="sec",
            ZOHO_CRM_REFRESH_TOKEN="1000.refresh",
            ZOHO_CRM_AUTH_CODE="code",
            ZOHO_CRM_REDIRECT_URL="https://app/cb",
        )
        await resolver.query_deal()

        grant = vendor.form(vendor.last("POST", TOKEN))
        assert grant["grant_type"] == "refresh_token"
        assert grant["refresh_token"] == "1000.refresh"
        assert vendor.last("POST", TOKEN).url.host == "accounts.zoho.com"

    @pytest.mark.asyncio
    async def test_auth_code_spent_once_then_refresh_token_reused(self, vendor):
        vendor.add("POST", TOKEN, {"access_token": "a1", "refresh_token": "r-new", "expires_in": 3600})
        vendor.add("POST", TOKEN, {"access_token": "a2", "expires_in": 3600})
        vendor.add("GET", f"{CRM}/Tasks", {"message": "expired"}, status=401)
        vendor.add("GET", f"{CRM}/Tasks", {"data": []})
        resolver = _resolver(
            vendor,
            ZOHO_CRM_CLIENT_ID="cid",
            ZOHO_CRM_CLIENT_SECRET="sec",
            ZOHO_CRM_AUTH_CODE="code",
            ZOHO_CRM_REDIRECT_URL="https://app/cb",
        )

        result = await resolver.query_task()

        assert result.ok
        first, second = (vendor.form(r) for r in vendor.calls("POST", TOKEN))
        assert first["grant_type"] == "authorization_code"
        assert first["redirect_uri"] == "https://app/cb"
        assert second == {
            "grant_type": "refresh_token",
            "refresh_token": "r-new",
            "client_id": "cid",
            "client_secret": "sec",
        }
        assert vendor.last("GET").headers["Authorization"] == "Zoho-oauthtoken a2"

    @pytest.mark.asyncio
    async def test_no_credentials(self, vendor):
        result = await _resolver(vendor).query_note()
        assert result.kind is ErrorKind.config
        assert "ZOHO_CRM_ACCESS_TOKEN" in result.message
        assert vendor.requests == []


# ── CRUD ──────────────────────────────────────────────────────────────────


class TestRecords:
    @pytest.mark.asyncio
    async def test_create_merges_details(self, resolver, vendor):
        vendor.add(
            "POST",
            f"{CRM}/Leads",
            {"data": [{"code": "SUCCESS", "status": "success", "details": {"id": "L1", "Created_Time": "2024-05-01"}}]},
        )
        result = await resolver.create_lead({"last_name": "Lovelace", "company": "Engines", "owner": "U9"})

        assert vendor.json(vendor.last("POST")) == {
            "data": [{"Last_Name": "Lovelace", "Company": "Engines", "Owner": {"id": "U9"}}]
        }
        lead = result.value.attributes
        assert lead["id"] == "L1"
        assert lead["owner"] == "U9"
        assert lead["created_time"] == "2024-05-01"

    @pytest.mark.asyncio
    async def test_row_error_is_vendor_failure_with_code(self, resolver, vendor):
        vendor.add(
            "POST",
            f"{CRM}/Contacts",
            {"data": [{"code": "MANDATORY_NOT_FOUND", "status": "error", "message": "required field not found"}]},
        )
        result = await resolver.create_contact({"first_name": "Ada"})

        assert result.kind is ErrorKind.vendor
        assert result.code == "MANDATORY_NOT_FOUND"
        assert result.message == "required field not found"

    @pytest.mark.asyncio
    async def test_empty_write_reply(self, resolver, vendor):
        vendor.add("POST", f"{CRM}/Accounts", {})
        result = await resolver.create_account({"account_name": "Acme"})
        assert result.message == "No data returned from Zoho CRM"

    @pytest.mark.asyncio
    async def test_query_by_id(self, resolver, vendor):
        vendor.add("GET", f"{CRM}/Deals/D1", {"data": [{"id": "D1", "Deal_Name": "Renewal", "Account_Name": {"id": "A1"}}]})
        result = await resolver.query_deal({"__path__": "zoho/Deal/D1"})
        assert result.value[0]["account_id"] == "A1"

    @pytest.mark.asyncio
    async def test_update_sends_id_and_merges(self, resolver, vendor):
        vendor.add(
            "PUT",
            f"{CRM}/Deals/D1",
            {"data": [{"status": "success", "details": {"Modified_Time": "2024-06-01"}}]},
        )
        result = await resolver.update_deal({"id": "D1"}, {"stage": "Closed Won"})

        assert vendor.json(vendor.last("PUT")) == {"data": [{"id": "D1", "Stage": "Closed Won"}]}
        deal = result.value.attributes
        assert deal["stage"] == "Closed Won"
        assert deal["modified_time"] == "2024-06-01"
        assert deal["id"] == "D1"

    @pytest.mark.asyncio
    async def test_empty_update_skips_request(self, resolver, vendor):
        result = await resolver.update_task({"id": "T1", "subject": "Call"}, {"unknown": "x"})
        assert result.value.attributes == {"id": "T1", "subject": "Call"}
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_update_requires_id(self, resolver):
        result = await resolver.update_note({}, {"note_title": "x"})
        assert result.message == "Note ID is required for update"

    @pytest.mark.asyncio
    async def test_delete_sends_no_content_type(self, resolver, vendor):
        vendor.add("DELETE", f"{CRM}/Leads/1", {"data": [{"status": "success"}]})
        result = await resolver.delete_lead({"id": "1"})

        assert result.ok
        assert "content-type" not in vendor.last("DELETE").headers

    @pytest.mark.asyncio
    async def test_empty_module_answers_204(self, resolver, vendor):
        vendor.add("GET", f"{CRM}/Notes", status=204)
        result = await resolver.query_note()
        assert result.value == []


class TestMappers:
    def test_lookup_field_accepts_id_or_record(self):
        assert lookup_field("A1") == {"id": "A1"}
        assert lookup_field({"id": "A1", "name": "Acme"}) == {"id": "A1"}
        assert lookup_field("") is None

    def test_build_record_skips_missing_and_none(self):
        record = build_record({"first_name": "Ada", "email": None, "account_id": "A1"}, CONTACT_FIELDS)
        assert record == {"First_Name": "Ada", "Account_Name": {"id": "A1"}}

    def test_deal_flattens_lookups(self):
        mapped = to_deal({"id": "D1", "Contact_Name": {"id": "C1", "name": "Ada"}, "Owner": {"id": "U1"}})
        assert mapped["contact_id"] == "C1"
        assert mapped["owner"] == "U1"


@pytest.mark.asyncio
async def test_subscription_skips_already_emitted_ids(resolver, vendor, sink):
    vendor.add("GET", f"{CRM}/Leads", {"data": [{"id": "L1"}, {"id": "L2"}]})
    vendor.add("GET", f"{CRM}/Leads", {"data": [{"id": "L1"}, {"id": "L2"}, {"id": "L3"}]})

    task = await resolver.subscribe_leads(sink)
    task.stop()
    emitted = await task.run_once()

    assert emitted == 1
    assert [i["id"] for i in sink.instances] == ["L1", "L2", "L3"]
    assert task.name == "zoho.leads"
