"""Zoho Expense connector: expenses, reports, currencies, categories and receipts.

Auth is shared with Zoho CRM (``src.resolvers.zoho.oauth``). Every call
needs ZOHO_EXPENSE_ORG_ID; requests to the expense, report and category
endpoints also carry it as ``organization_id``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import httpx
import structlog

from src.resolvers.config import get_settings
from src.resolvers.core.errors import ConfigError, NotFoundError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, path_id
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Success, returns_result
from src.resolvers.zoho.oauth import ZohoOAuth
from src.resolvers.zohoexpense import mappers
from src.resolvers.zohoexpense.config import ZohoExpenseSettings, get_zoho_expense_settings

logger = structlog.get_logger(__name__)

ORG_SCOPED_PATHS = ("/expenses", "/expensereports", "/expensecategories")

AUTH_REQUIRED = (
    "Zoho Expense authentication required: set ZOHO_EXPENSE_ACCESS_TOKEN or OAuth2 variables "
    "(client id/secret/auth code/redirect)."
)


def _unwrap(body: Any, *keys: str) -> Any:
    if not isinstance(body, dict):
        return body
    for key in keys:
        if body.get(key):
            return body[key]
    return body


class ZohoExpenseResolver(ResolverBase):
    NAMESPACE = "zohoexpense"

    def __init__(
        self,
        settings: ZohoExpenseSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        fs_root: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_zoho_expense_settings()
        self.fs_root = Path(fs_root) if fs_root is not None else get_settings().fs_path()
        self.oauth = ZohoOAuth("expense", self.settings.credentials, AUTH_REQUIRED)
        self.http = HttpClient(
            "zohoexpense",
            self.settings.api_url,
            auth=self._auth_headers,
            timeout=self.settings.timeout_seconds,
            transport=transport,
            on_unauthorized=self.oauth.invalidate,
        )

    @property
    def org_id(self) -> str:
        if not self.settings.ZOHO_EXPENSE_ORG_ID:
            raise ConfigError("ZOHO_EXPENSE_ORG_ID is required.")
        return self.settings.ZOHO_EXPENSE_ORG_ID

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": await self.oauth.authorization(self.http)}

    async def _call(self, method: str, path: str, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        org_id = self.org_id
        query = {k: v for k, v in (params or {}).items() if v not in (None, "")}
        if "organization_id" not in query and any(p in path for p in ORG_SCOPED_PATHS):
            query["organization_id"] = org_id
        return await self.http.request(method, path, params=query or None, **kwargs)

    # ── Expenses ──────────────────────────────────────────────────────────

    @returns_result
    async def query_expense(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        expense_id = path_id(query)
        if expense_id:
            body = await self._call("GET", f"/expenses/{expense_id}")
            return [self._instance("Expense", mappers.to_expense(_unwrap(body, "expense", "data")))]

        body = await self._call("GET", "/expenses", mappers.filters(query, mappers.EXPENSE_FILTERS))
        expenses = body.get("expenses") or body.get("data") or []
        return self._instances("Expense", expenses, mappers.to_expense)

    @returns_result
    async def create_expense(self, attrs: Mapping[str, Any]) -> Instance:
        body = await self._call("POST", "/expenses", json=mappers.expense_payload(attrs))
        created = body.get("expenses") or [body.get("expense") or {}]
        expense = mappers.to_expense(created[0])
        logger.info("zohoexpense_expense_created", expense_id=expense["id"])
        return self._instance("Expense", expense)

    @returns_result
    async def create_expense_attachment(self, attrs: Mapping[str, Any]) -> Instance:
        """Attach a receipt from FS_ROOT to an existing expense.

        ``file_path`` (or ``file_name``) is resolved under FS_ROOT unless
        absolute. ``content_type``/``mime_type`` override the extension guess.
        """
        expense_id = attrs.get("expense_id")
        file_name = attrs.get("file_name")
        if not expense_id:
            raise RequiredFieldError("expense_id is required")
        if not file_name:
            raise RequiredFieldError("file_name is required")

        local_path = Path(attrs.get("file_path") or file_name)
        if not local_path.is_absolute():
            local_path = self.fs_root / local_path
        if not local_path.is_file():
            raise NotFoundError(f"file_name must point to a file: {local_path}")

        content_type = attrs.get("content_type") or attrs.get("mime_type") or mappers.guess_mime_type(file_name)
        content = local_path.read_bytes()
        body = await self._call(
            "PUT",
            f"/expenses/{expense_id}",
            data={"organization_id": self.org_id, "JSONString": json.dumps({"expense_id": expense_id})},
            files={"attachment": (file_name, content, content_type)},
            timeout=HttpClient.TIMEOUT_UPLOAD,
        )
        logger.info("zohoexpense_receipt_attached", expense_id=expense_id, file_name=file_name, size=len(content))
        return self._instance("Expense", mappers.to_expense(_unwrap(body, "expense", "data")))

    # ── Reports ───────────────────────────────────────────────────────────

    @returns_result
    async def query_report(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        """Reports reduced to the queryable keys.

        A single-report fetch also applies any key filters in ``query`` and
        returns nothing when one does not match.
        """
        report_filters = mappers.filters(query, mappers.REPORT_KEYS)
        report_id = path_id(query)
        if report_id:
            report = _unwrap(await self._call("GET", f"/expensereports/{report_id}"), "expense_report", "data")
            if not mappers.matches(report, report_filters):
                return []
            return [self._instance("Report", mappers.report_view(report))]

        body = await self._call("GET", "/expensereports", report_filters)
        reports = body.get("expense_reports") or body.get("data") or []
        return self._instances("Report", reports, mappers.report_view)

    @returns_result
    async def create_report(self, attrs: Mapping[str, Any]) -> Instance | Success:
        body = await self._call("POST", "/expensereports", json=mappers.report_payload(attrs))
        report = mappers.to_report(_unwrap(body, "expense_report", "data"))
        if not report["id"]:
            return Success(message="Report created")
        logger.info("zohoexpense_report_created", report_id=report["id"])
        return self._instance("Report", report)

    @returns_result
    async def add_expense_to_report(self, report_id: str, expense_id: Any) -> Instance | Success:
        """Link an expense to a report, keeping the expenses already on it."""
        if not report_id:
            raise RequiredFieldError("report_id is required")
        new_id = mappers.normalize_expense_id(expense_id)
        if not new_id:
            raise RequiredFieldError("expense_id is required")

        current = _unwrap(await self._call("GET", f"/expensereports/{report_id}"), "expense_report", "data")
        ids = list(dict.fromkeys([new_id, *mappers.existing_expense_ids(current)]))

        body = await self._call(
            "PUT",
            f"/expensereports/{report_id}",
            json={"expenses": [{"expense_id": i} for i in ids]},
        )
        logger.info("zohoexpense_report_expenses_set", report_id=report_id, count=len(ids))
        report = mappers.to_report(_unwrap(body, "expense_report", "data"))
        if not report["id"]:
            return Success(id=str(report_id), message="Expense added to report")
        return self._instance("Report", report)

    # ── Settings lookups ──────────────────────────────────────────────────

    @returns_result
    async def query_currency(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        currency_id = path_id(query)
        if currency_id:
            body = await self._call("GET", f"/settings/currencies/{currency_id}")
            return [self._instance("Currency", mappers.to_currency(_unwrap(body, "currency", "data")))]

        code = (query or {}).get("code")
        params = {"currency_code": code} if code else mappers.filters(query, ("page", "per_page"))
        body = await self._call("GET", "/settings/currencies", params)
        currencies = body.get("currencies") or body.get("data") or []
        if code:
            currencies = [c for c in currencies if (c.get("currency_code") or c.get("code")) == code]
        return self._instances("Currency", currencies, mappers.to_currency)

    @returns_result
    async def query_expense_category(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        category_id = path_id(query)
        if category_id:
            body = await self._call("GET", f"/expensecategories/{category_id}")
            return [self._instance("ExpenseCategory", mappers.to_expense_category(_unwrap(body, "category", "data")))]

        body = await self._call("GET", "/expensecategories", mappers.filters(query, ("status", "page", "per_page")))
        categories = body.get("expense_accounts") or body.get("data") or []
        return self._instances("ExpenseCategory", categories, mappers.to_expense_category)
