"""Expensify job responses -> canonical attribute dicts.

Expensify is inconsistent about key casing between job types, so each field
falls back to an alternate spelling.
"""

from __future__ import annotations

from src.resolvers.core.instance import to_float


def _first(record: dict, *keys: str, default=None):
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return default


def to_expense(expense: dict) -> dict:
    return {
        "id": _first(expense, "expenseID", "id"),
        "report_id": _first(expense, "reportID", "report_id"),
        "report_name": _first(expense, "reportName", "report_name"),
        "merchant": _first(expense, "merchant", "merchantName"),
        "amount": to_float(expense.get("amount")) if expense.get("amount") else None,
        "currency": expense.get("currency") or "USD",
        "category": _first(expense, "category", "categoryName"),
        "created": _first(expense, "created", "createdDate"),
        "modified": _first(expense, "modified", "modifiedDate"),
        "comment": _first(expense, "comment", "description"),
        "receipt": _first(expense, "receipt", "hasReceipt", default=False),
        "reimbursable": expense.get("reimbursable") is not False,
        "billable": expense.get("billable") or False,
        "expense_type": _first(expense, "expenseType", "type"),
        "tag": _first(expense, "tag", "tags"),
        "employee_email": _first(expense, "employeeEmail", "email"),
        "employee_name": _first(expense, "employeeName", "name"),
    }


def to_report(report: dict) -> dict:
    expenses = report.get("expenses") or []
    return {
        "id": _first(report, "reportID", "id"),
        "report_name": _first(report, "reportName", "name"),
        "status": _first(report, "state", "status"),
        "total": to_float(report.get("total")) if report.get("total") else None,
        "currency": report.get("currency") or "USD",
        "created": _first(report, "created", "createdDate"),
        "modified": _first(report, "modified", "modifiedDate"),
        "submitted": _first(report, "submitted", "submittedDate"),
        "approved": _first(report, "approved", "approvedDate"),
        "reimbursed": _first(report, "reimbursed", "reimbursedDate"),
        "employee_email": _first(report, "employeeEmail", "email"),
        "employee_name": _first(report, "employeeName", "name"),
        "policy_id": _first(report, "policyID", "policy_id"),
        "policy_name": _first(report, "policyName", "policy_name"),
        "expense_count": report.get("expenseCount") or len(expenses),
    }


def to_policy(policy: dict) -> dict:
    return {
        "id": _first(policy, "policyID", "id"),
        "name": _first(policy, "policyName", "name"),
        "output_currency": _first(policy, "outputCurrency", "currency"),
        "created": _first(policy, "created", "createdDate"),
        "modified": _first(policy, "modified", "modifiedDate"),
        "employee_count": policy.get("employeeCount") or 0,
        "owner_email": _first(policy, "ownerEmail", "owner_email"),
    }
