"""HubSpot CRM v3 connector."""

from src.resolvers.hubspot.config import HubSpotSettings, get_hubspot_settings
from src.resolvers.hubspot.resolver import HubSpotResolver

__all__ = ["HubSpotResolver", "HubSpotSettings", "get_hubspot_settings"]
