"""Drive API v3 records to canonical attributes."""

from __future__ import annotations

from typing import Any

from src.resolvers.core.instance import join_csv

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def to_document(f: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": f.get("id"),
        "url": f.get("webViewLink") or "",
        "title": f.get("name"),
        "mime_type": f.get("mimeType"),
        "updated_at": f.get("modifiedTime"),
    }


# Folders share the document shape.
to_folder = to_document


def to_file(f: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": f.get("id"),
        "name": f.get("name"),
        "mime_type": f.get("mimeType"),
        "parents": join_csv(f.get("parents")) or None,
        "modified_time": f.get("modifiedTime"),
        "created_time": f.get("createdTime"),
        "web_view_link": f.get("webViewLink") or "",
        "kind": f.get("kind") or "",
    }


def to_drive(d: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": d.get("id"),
        "name": d.get("name"),
        "kind": d.get("kind"),
        "created_time": d.get("createdTime"),
        "hidden": d.get("hidden") or False,
    }


def to_folder_content(listing: dict[str, Any]) -> dict[str, Any]:
    """Split a ``files.list`` page into folders and everything else."""
    files, folders = [], []
    for item in listing.get("files") or []:
        (folders if item.get("mimeType") == FOLDER_MIME_TYPE else files).append(to_file(item))
    return {"files": files, "folders": folders, "next_cursor": listing.get("nextPageToken")}
