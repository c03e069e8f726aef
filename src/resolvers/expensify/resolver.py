"""Expensify connector.

Every call is a single form-encoded POST whose ``requestJobDescription``
field carries a JSON job (type, inputSettings, credentials). Expensify
reports application errors through ``responseCode`` even on HTTP 200.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

import httpx
import structlog

from src.resolvers.core.errors import ConfigError, RequiredFieldError, VendorError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, compact, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Success, returns_result
from src.resolvers.expensify import mappers
from src.resolvers.expensify.config import ExpensifySettings, get_expensify_settings

logger = structlog.get_logger(__name__)


class ExpensifyResolver(ResolverBase):
    NAMESPACE = "expensify"

    def __init__(
        self,
        settings: ExpensifySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_expensify_settings()
        self.http = HttpClient("expensify", self.settings.EXPENSIFY_API_URL, transport=transport)

    def _credentials(self) -> dict[str, str]:
        s = self.settings
        if not s.EXPENSIFY_PARTNER_USER_ID or not s.EXPENSIFY_PARTNER_USER_SECRET:
            raise ConfigError(
                "Expensify credentials are required: EXPENSIFY_PARTNER_USER_ID and EXPENSIFY_PARTNER_USER_SECRET"
            )
        return {
            "partnerUserID": s.EXPENSIFY_PARTNER_USER_ID,
            "partnerUserSecret": s.EXPENSIFY_PARTNER_USER_SECRET,
        }

    async def _job(self, job_type: str, input_settings: Mapping[str, Any]) -> Any:
        job = {
            "type": job_type,
            "inputSettings": compact(input_settings),
            "credentials": self._credentials(),
        }
        body = await self.http.post("", data={"requestJobDescription": json.dumps(job)})
        if isinstance(body, dict) and "responseCode" in body:
            if body["responseCode"] != 200:
                message = body.get("responseMessage") or json.dumps(body)
                raise VendorError(
                    f"Expensify API Error: {body['responseCode']} - {message}",
                    code=str(body["responseCode"]),
                )
            if body.get("responseObject"):
                return body["responseObject"]
        return body

    async def _get(self, list_key: str, input_settings: Mapping[str, Any], single: bool) -> list[dict]:
        result = await self._job("get", input_settings)
        if isinstance(result, dict) and list_key in result:
            items = result[list_key]
        elif single:
            items = [result]
        else:
            items = []
        return items if isinstance(items, list) else [items]

    # ── Expenses ──────────────────────────────────────────────────────────

    async def _list_expenses(self) -> list[Instance]:
        return self._instances("Expense", await self._get("expenses", {"type": "expenses"}, False), mappers.to_expense)

    @returns_result
    async def create_expense(self, attrs: Mapping[str, Any]) -> Success:
        result = await self._job(
            "create",
            {
                "type": "expense",
                "employeeEmail": attrs.get("employee_email"),
                "merchant": attrs.get("merchant"),
                "amount": attrs.get("amount"),
                "currency": attrs.get("currency") or "USD",
                "created": attrs.get("created") or datetime.now(timezone.utc).isoformat(),
                "category": attrs.get("category"),
                "comment": attrs.get("comment"),
                "reportID": attrs.get("report_id"),
                "expenseType": attrs.get("expense_type"),
                "tag": attrs.get("tag"),
            },
        )
        return Success(id=_created_id(result, "expenseID"))

    @returns_result
    async def query_expense(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        expense_id = path_id(query)
        if expense_id:
            items = await self._get("expenses", {"type": "expenses", "expenseID": expense_id}, True)
            return self._instances("Expense", items, mappers.to_expense)
        return await self._list_expenses()

    @returns_result
    async def update_expense(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Expense ID is required for update")
        await self._job(
            "update",
            {
                "type": "expense",
                "expenseID": attrs["id"],
                "merchant": new_attrs.get("merchant"),
                "amount": new_attrs.get("amount"),
                "currency": new_attrs.get("currency"),
                "category": new_attrs.get("category"),
                "comment": new_attrs.get("comment"),
                "expenseType": new_attrs.get("expense_type"),
                "tag": new_attrs.get("tag"),
            },
        )
        return self._instance("Expense", attrs)

    @returns_result
    async def delete_expense(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Expense ID is required for deletion")
        await self._job("delete", {"type": "expense", "expenseID": attrs["id"]})

    # ── Reports ───────────────────────────────────────────────────────────

    async def _list_reports(self) -> list[Instance]:
        return self._instances("Report", await self._get("reports", {"type": "reports"}, False), mappers.to_report)

    @returns_result
    async def create_report(self, attrs: Mapping[str, Any]) -> Success:
        result = await self._job(
            "create",
            {
                "type": "report",
                "reportName": attrs.get("report_name"),
                "employeeEmail": attrs.get("employee_email"),
                "policyID": attrs.get("policy_id"),
            },
        )
        return Success(id=_created_id(result, "reportID"))

    @returns_result
    async def query_report(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        report_id = path_id(query)
        if report_id:
            items = await self._get("reports", {"type": "report", "reportID": report_id}, True)
            return self._instances("Report", items, mappers.to_report)
        return await self._list_reports()

    @returns_result
    async def update_report(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Report ID is required for update")
        await self._job(
            "update",
            {
                "type": "report",
                "reportID": attrs["id"],
                "reportName": new_attrs.get("report_name"),
                "policyID": new_attrs.get("policy_id"),
            },
        )
        return self._instance("Report", attrs)

    @returns_result
    async def delete_report(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Report ID is required for deletion")
        await self._job("delete", {"type": "report", "reportID": attrs["id"]})

    # ── Policies ──────────────────────────────────────────────────────────

    async def _list_policies(self) -> list[Instance]:
        return self._instances("Policy", await self._get("policies", {"type": "policies"}, False), mappers.to_policy)

    @returns_result
    async def create_policy(self, attrs: Mapping[str, Any]) -> Success:
        result = await self._job(
            "create",
            {
                "type": "policy",
                "policyName": attrs.get("name"),
                "outputCurrency": attrs.get("output_currency") or "USD",
                "ownerEmail": attrs.get("owner_email"),
            },
        )
        return Success(id=_created_id(result, "policyID"))

    @returns_result
    async def query_policy(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        policy_id = path_id(query)
        if policy_id:
            items = await self._get("policies", {"type": "policy", "policyID": policy_id}, True)
            return self._instances("Policy", items, mappers.to_policy)
        return await self._list_policies()

    @returns_result
    async def update_policy(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Policy ID is required for update")
        await self._job(
            "update",
            {
                "type": "policy",
                "policyID": attrs["id"],
                "policyName": new_attrs.get("name"),
                "outputCurrency": new_attrs.get("output_currency"),
            },
        )
        return self._instance("Policy", attrs)

    @returns_result
    async def delete_policy(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Policy ID is required for deletion")
        await self._job("delete", {"type": "policy", "policyID": attrs["id"]})

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_expenses(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "expenses", self._list_expenses, sink, self.settings.EXPENSIFY_POLL_INTERVAL_MINUTES
        )

    async def subscribe_reports(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("reports", self._list_reports, sink, self.settings.EXPENSIFY_POLL_INTERVAL_MINUTES)

    async def subscribe_policies(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "policies", self._list_policies, sink, self.settings.EXPENSIFY_POLL_INTERVAL_MINUTES
        )


def _created_id(result: Any, key: str) -> str | None:
    if not isinstance(result, dict):
        return None
    value = result.get(key) or result.get("id")
    return str(value) if value is not None else None
