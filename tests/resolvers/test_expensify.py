"""Tests for the Expensify job-based connector."""

from __future__ import annotations

import json

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.expensify.config import ExpensifySettings
from src.resolvers.expensify.mappers import to_expense, to_report
from src.resolvers.expensify.resolver import ExpensifyResolver

JOB_PATH = "/Integration-Server/ExpensifyIntegrations"


@pytest.fixture
def resolver(vendor):
    settings = ExpensifySettings(
        EXPENSIFY_PARTNER_USER_ID="partner",
        EXPENSIFY_PARTNER_USER_SECRET="secret",
        _env_file=None,
    )
    return ExpensifyResolver(settings, transport=vendor.transport)


def _job(vendor) -> dict:
    return json.loads(vendor.form(vendor.last("POST", JOB_PATH))["requestJobDescription"])


class TestJobs:
    @pytest.mark.asyncio
    async def test_create_expense_posts_job_with_credentials(self, resolver, vendor):
        vendor.add("POST", JOB_PATH, {"responseCode": 200, "responseObject": {"expenseID": 77}})
        result = await resolver.create_expense(
            {"employee_email": "a@example.com", "merchant": "Cafe", "amount": 1250, "created": "2024-03-01"}
        )

        assert result.id == "77"
        job = _job(vendor)
        assert job["type"] == "create"
        assert job["credentials"] == {"partnerUserID": "partner", "partnerUserSecret": "secret"}
        assert job["inputSettings"]["currency"] == "USD"
        assert "comment" not in job["inputSettings"]

    @pytest.mark.asyncio
    async def test_response_code_error_is_vendor_failure(self, resolver, vendor):
        vendor.add("POST", JOB_PATH, {"responseCode": 407, "responseMessage": "Authentication error"})
        result = await resolver.query_expense()

        assert result.kind is ErrorKind.vendor
        assert result.code == "407"
        assert "Authentication error" in result.message

    @pytest.mark.asyncio
    async def test_missing_credentials_fails_without_request(self, vendor):
        resolver = ExpensifyResolver(ExpensifySettings(_env_file=None), transport=vendor.transport)
        result = await resolver.query_report()
        assert result.kind is ErrorKind.config
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_update_echoes_caller_record(self, resolver, vendor):
        vendor.add("POST", JOB_PATH, {"responseCode": 200})
        result = await resolver.update_report({"id": "R1", "report_name": "Old"}, {"report_name": "New"})

        assert result.value.attributes == {"id": "R1", "report_name": "Old"}
        assert _job(vendor)["inputSettings"] == {"type": "report", "reportID": "R1", "reportName": "New"}

    @pytest.mark.asyncio
    async def test_delete_requires_id(self, resolver, vendor):
        result = await resolver.delete_policy({})
        assert result.kind is ErrorKind.validation
        assert vendor.requests == []


class TestMappers:
    def test_expense_falls_back_to_alternate_keys(self):
        mapped = to_expense({"id": "E1", "merchantName": "Cafe", "amount": "12.5", "reimbursable": False})
        assert mapped["id"] == "E1"
        assert mapped["merchant"] == "Cafe"
        assert mapped["amount"] == 12.5
        assert mapped["currency"] == "USD"
        assert mapped["reimbursable"] is False
        assert mapped["receipt"] is False

    def test_report_counts_expenses(self):
        mapped = to_report({"reportID": "R1", "state": "OPEN", "expenses": [{}, {}]})
        assert mapped["status"] == "OPEN"
        assert mapped["expense_count"] == 2


@pytest.mark.asyncio
async def test_reports_subscription_emits_each_report(resolver, vendor, sink):
    vendor.add("POST", JOB_PATH, {"responseCode": 200, "responseObject": {"reports": [{"reportID": "R1"}]}})
    task = await resolver.subscribe_reports(sink)
    task.stop()

    assert [i["id"] for i in sink.instances] == ["R1"]
    assert sink.received[0][1] is True
