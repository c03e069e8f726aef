"""GitHub REST payloads -> canonical attribute dicts."""

from __future__ import annotations

from datetime import datetime, timezone


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_issue(issue: dict, owner: str, repo: str) -> dict:
    user = issue.get("user") or {}
    return {
        "id": str(issue.get("id")),
        "owner": owner,
        "repo": repo,
        "issue_number": issue.get("number"),
        "title": issue.get("title"),
        "author": user.get("login"),
        "author_id": str(user.get("id")) if user.get("id") is not None else None,
        "state": issue.get("state"),
        "date_created": issue.get("created_at"),
        "date_last_modified": issue.get("updated_at"),
        "body": issue.get("body") or "",
    }


def to_repository(repo: dict) -> dict:
    return {
        "id": repo.get("id"),
        "owner": (repo.get("owner") or {}).get("login"),
        "name": repo.get("name"),
        "full_name": repo.get("full_name"),
        "description": repo.get("description") or "",
        "url": repo.get("html_url"),
        "date_created": repo.get("created_at"),
        "date_last_modified": repo.get("updated_at"),
    }


def to_file(file: dict) -> dict:
    return {
        "id": file.get("sha"),
        "name": file.get("path") or file.get("filename"),
        "url": file.get("url") or file.get("blob_url"),
        "last_modified_date": (file.get("committer") or {}).get("date") or _now_iso(),
    }


def to_organization(org: dict) -> dict:
    return {
        "id": org.get("id"),
        "login": org.get("login"),
        "name": org.get("name"),
        "url": org.get("html_url"),
        "description": org.get("description") or "",
    }


def to_user(user: dict) -> dict:
    return {
        "id": user.get("id"),
        "login": user.get("login"),
        "name": user.get("name") or "",
        "url": user.get("html_url"),
        "email": user.get("email") or "",
    }
