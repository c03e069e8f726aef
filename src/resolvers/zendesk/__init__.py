"""Zendesk Support and Help Center connector."""

from src.resolvers.zendesk.config import ZendeskSettings, get_zendesk_settings
from src.resolvers.zendesk.resolver import ZendeskResolver

__all__ = ["ZendeskResolver", "ZendeskSettings", "get_zendesk_settings"]
