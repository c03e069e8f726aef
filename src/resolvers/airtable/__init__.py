"""Airtable connector: bases, tables, fields and records."""

from src.resolvers.airtable.config import AirtableSettings, get_airtable_settings
from src.resolvers.airtable.resolver import AirtableResolver

__all__ = ["AirtableResolver", "AirtableSettings", "get_airtable_settings"]
