"""Tests for the Zoho Expense connector."""

from __future__ import annotations

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.zohoexpense.config import ZohoExpenseSettings
from src.resolvers.zohoexpense.mappers import existing_expense_ids, guess_mime_type, normalize_expense_id, to_expense
from src.resolvers.zohoexpense.resolver import ZohoExpenseResolver

API = "/expense/v1"


def _resolver(vendor, fs_root, **overrides):
    values = {"ZOHO_EXPENSE_ACCESS_TOKEN": "1000.exp", "ZOHO_EXPENSE_ORG_ID": "org7", **overrides}
    settings = ZohoExpenseSettings(_env_file=None, **values)
    return ZohoExpenseResolver(settings, transport=vendor.transport, fs_root=fs_root)


@pytest.fixture
def resolver(vendor, fs_root):
    return _resolver(vendor, fs_root)


# ── Organization scoping ──────────────────────────────────────────────────


class TestOrganization:
    @pytest.mark.asyncio
    async def test_expense_calls_carry_organization_id(self, resolver, vendor):
        vendor.add("GET", f"{API}/expenses", {"expenses": [{"expense_id": "E1", "amount": "12.50"}]})
        result = await resolver.query_expense({"status": "draft", "employee_id": ""})

        params = vendor.last().url.params
        assert params["organization_id"] == "org7"
        assert params["status"] == "draft"
        assert "employee_id" not in params
        assert vendor.last().headers["Authorization"] == "Zoho-oauthtoken 1000.exp"
        assert result.value[0]["amount"] == 12.5

    @pytest.mark.asyncio
    async def test_currency_lookups_are_not_org_scoped(self, resolver, vendor):
        vendor.add("GET", f"{API}/settings/currencies", {"currencies": []})
        await resolver.query_currency()
        assert "organization_id" not in vendor.last().url.params

    @pytest.mark.asyncio
    async def test_missing_org_is_config_failure(self, vendor, fs_root):
        resolver = _resolver(vendor, fs_root, ZOHO_EXPENSE_ORG_ID="")
        result = await resolver.query_currency()

        assert result.kind is ErrorKind.config
        assert result.message == "ZOHO_EXPENSE_ORG_ID is required."
        assert vendor.requests == []


# ── Reports ───────────────────────────────────────────────────────────────


class TestReports:
    @pytest.mark.asyncio
    async def test_add_expense_keeps_existing_and_dedupes(self, resolver, vendor):
        vendor.add(
            "GET",
            f"{API}/expensereports/R1",
            {"expense_report": {"report_id": "R1", "expenses": [{"expense_id": "E1"}, {"expense_id": "E2"}]}},
        )
        vendor.add("PUT", f"{API}/expensereports/R1", {"expense_report": {"report_id": "R1", "status": "draft"}})

        result = await resolver.add_expense_to_report("R1", {"expense_id": "E2"})

        assert vendor.json(vendor.last("PUT")) == {"expenses": [{"expense_id": "E2"}, {"expense_id": "E1"}]}
        assert result.value["id"] == "R1"

    @pytest.mark.asyncio
    async def test_add_expense_without_report_in_reply(self, resolver, vendor):
        vendor.add("GET", f"{API}/expensereports/R1", {"expense_report": {"expense_ids": "E1,E3"}})
        vendor.add("PUT", f"{API}/expensereports/R1", {"code": 0, "message": "updated"})

        result = await resolver.add_expense_to_report("R1", 42)

        assert vendor.json(vendor.last("PUT"))["expenses"] == [
            {"expense_id": "42"},
            {"expense_id": "E1"},
            {"expense_id": "E3"},
        ]
        assert result.id == "R1"
        assert result.message == "Expense added to report"

    @pytest.mark.asyncio
    async def test_add_expense_requires_ids(self, resolver, vendor):
        assert (await resolver.add_expense_to_report("", "E1")).kind is ErrorKind.validation
        assert (await resolver.add_expense_to_report("R1", "  ")).kind is ErrorKind.validation
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_report_by_id_honours_filters(self, resolver, vendor):
        vendor.add(
            "GET",
            f"{API}/expensereports/R1",
            {"expense_report": {"report_id": "R1", "status": "approved", "total": 90}},
        )
        matched = await resolver.query_report({"__path__": "zohoexpense/Report/R1", "status": "approved"})
        missed = await resolver.query_report({"__path__": "zohoexpense/Report/R1", "status": "draft"})

        assert matched.value[0].attributes == {"report_id": "R1", "status": "approved"}
        assert missed.value == []

    @pytest.mark.asyncio
    async def test_create_report_without_id(self, resolver, vendor):
        vendor.add("POST", f"{API}/expensereports", {"message": "created"})
        result = await resolver.create_report({"report_name": "Trip", "payload": {"trip_id": "T1"}})

        assert vendor.json(vendor.last("POST")) == {"trip_id": "T1", "report_name": "Trip"}
        assert result.message == "Report created"


# ── Receipts ──────────────────────────────────────────────────────────────


class TestAttachments:
    @pytest.mark.asyncio
    async def test_receipt_uploaded_from_fs_root(self, resolver, vendor, fs_root):
        (fs_root / "receipt.pdf").write_bytes(b"%PDF-1.4 receipt")
        vendor.add("PUT", f"{API}/expenses/E1", {"expense": {"expense_id": "E1"}})

        result = await resolver.create_expense_attachment({"expense_id": "E1", "file_name": "receipt.pdf"})

        request = vendor.last("PUT")
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b"%PDF-1.4 receipt" in request.content
        assert b"application/pdf" in request.content
        assert b'name="organization_id"' in request.content
        assert result.value["id"] == "E1"

    @pytest.mark.asyncio
    async def test_missing_file_is_not_found(self, resolver, vendor):
        result = await resolver.create_expense_attachment({"expense_id": "E1", "file_name": "nope.png"})
        assert result.kind is ErrorKind.not_found
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_expense_id_required(self, resolver):
        result = await resolver.create_expense_attachment({"file_name": "receipt.pdf"})
        assert result.message == "expense_id is required"


class TestLookups:
    @pytest.mark.asyncio
    async def test_currency_code_matches_exactly(self, resolver, vendor):
        vendor.add(
            "GET",
            f"{API}/settings/currencies",
            {
                "currencies": [
                    {"currency_id": "1", "currency_code": "USD", "is_base_currency": True},
                    {"currency_id": "2", "currency_code": "USDT", "is_base_currency": False},
                ]
            },
        )
        result = await resolver.query_currency({"code": "USD"})

        assert vendor.last().url.params["currency_code"] == "USD"
        assert [c["id"] for c in result.value] == ["1"]
        assert result.value[0]["is_base"] is True

    @pytest.mark.asyncio
    async def test_categories_mapped(self, resolver, vendor):
        vendor.add(
            "GET",
            f"{API}/expensecategories",
            {"expense_accounts": [{"category_id": "C1", "category_name": "Travel", "is_active": False}]},
        )
        result = await resolver.query_expense_category()

        assert result.value[0].attributes["name"] == "Travel"
        assert result.value[0]["is_active"] is False


class TestMappers:
    def test_expense_aliases(self):
        mapped = to_expense({"id": "E9", "total": 0, "currency": "EUR", "vendor_name": "Cafe"})
        assert mapped["id"] == "E9"
        assert mapped["amount"] == 0.0
        assert mapped["merchant"] == "Cafe"

    @pytest.mark.parametrize(
        "value,expected",
        [(" E1 ", "E1"), (7, "7"), ({"id": "E2"}, "E2"), ("", None), ([], None)],
    )
    def test_normalize_expense_id(self, value, expected):
        assert normalize_expense_id(value) == expected

    def test_existing_ids_from_either_shape(self):
        assert existing_expense_ids({"expenses": [{"expense_id": "a"}, {}]}) == ["a"]
        assert existing_expense_ids({"expense_ids": ["b", "c"]}) == ["b", "c"]
        assert existing_expense_ids({}) == []

    def test_mime_guess(self):
        assert guess_mime_type("SCAN.JPG") == "image/jpeg"
        assert guess_mime_type("notes.txt") == "application/octet-stream"
