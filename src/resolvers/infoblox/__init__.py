"""Infoblox WAPI connector (DNS records and networks) plus a local mock."""

from src.resolvers.infoblox.config import InfobloxSettings, get_infoblox_settings
from src.resolvers.infoblox.resolver import ALREADY_EXISTS, InfobloxResolver

__all__ = ["InfobloxResolver", "InfobloxSettings", "get_infoblox_settings", "ALREADY_EXISTS"]
