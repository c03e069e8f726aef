"""Zoho Expense connector."""

from src.resolvers.zohoexpense.config import ZohoExpenseSettings, get_zoho_expense_settings
from src.resolvers.zohoexpense.resolver import ZohoExpenseResolver

__all__ = ["ZohoExpenseResolver", "ZohoExpenseSettings", "get_zoho_expense_settings"]
