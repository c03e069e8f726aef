"""Box API payloads -> canonical attribute dicts."""

from __future__ import annotations


def _shared_download_url(item: dict) -> str | None:
    return (item.get("shared_link") or {}).get("download_url")


def to_file(file: dict) -> dict:
    return {
        "id": file.get("id"),
        "name": file.get("name"),
        "download_url": _shared_download_url(file) or "",
        "modified_at": file.get("modified_at"),
    }


def to_folder(folder: dict) -> dict:
    return {
        "id": folder.get("id"),
        "name": folder.get("name"),
        "modified_at": folder.get("modified_at"),
        "url": _shared_download_url(folder) or None,
    }


def to_user(user: dict) -> dict:
    parts = (user.get("name") or "").split(" ")
    return {
        "id": user.get("id"),
        "email": user.get("login"),
        "first_name": parts[0] if parts else "",
        "last_name": parts[1] if len(parts) > 1 else "",
    }


def to_folder_content(listing: dict) -> dict:
    entries = listing.get("entries") or []
    return {
        "files": [to_file(e) for e in entries if e.get("type") == "file"],
        "folders": [to_folder(e) for e in entries if e.get("type") == "folder"],
        "next_marker": listing.get("next_marker") or None,
    }
