"""Google Drive connector: documents, folders, files, shared drives."""

from src.resolvers.googledrive.config import GoogleDriveSettings, get_google_drive_settings
from src.resolvers.googledrive.resolver import GoogleDriveResolver

__all__ = ["GoogleDriveResolver", "GoogleDriveSettings", "get_google_drive_settings"]
