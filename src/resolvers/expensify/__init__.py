"""Expensify connector: expenses, reports and policies via the job API."""

from src.resolvers.expensify.config import ExpensifySettings, get_expensify_settings
from src.resolvers.expensify.resolver import ExpensifyResolver

__all__ = ["ExpensifyResolver", "ExpensifySettings", "get_expensify_settings"]
