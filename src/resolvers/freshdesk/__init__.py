"""Freshdesk connector (API v2, Basic auth with the API key)."""

from src.resolvers.freshdesk.config import FreshdeskSettings, get_freshdesk_settings
from src.resolvers.freshdesk.resolver import FreshdeskResolver

__all__ = ["FreshdeskResolver", "FreshdeskSettings", "get_freshdesk_settings"]
