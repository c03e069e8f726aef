"""Box connector: files, folders, users, folder listings and local sync."""

from src.resolvers.box.config import BoxSettings, get_box_settings
from src.resolvers.box.resolver import BoxResolver, get_file_unique_name

__all__ = ["BoxResolver", "BoxSettings", "get_box_settings", "get_file_unique_name"]
