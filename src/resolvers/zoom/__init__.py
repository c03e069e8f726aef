"""Zoom REST v2 connector."""

from src.resolvers.zoom.config import ZoomSettings, get_zoom_settings
from src.resolvers.zoom.resolver import ZoomResolver

__all__ = ["ZoomResolver", "ZoomSettings", "get_zoom_settings"]
