"""Jira REST v3 payloads to canonical attributes, and ADF helpers."""

from __future__ import annotations

import json
from typing import Any, Mapping

from src.resolvers.core.instance import split_csv


def to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text as a single-paragraph Atlassian Document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


def to_comment(comment: dict[str, Any]) -> dict[str, Any]:
    author = comment.get("author") or {}
    return {
        "id": comment.get("id"),
        "created_at": comment.get("created"),
        "updated_at": comment.get("updated"),
        "author": {
            "account_id": author.get("accountId") or "",
            "active": author.get("active") or False,
            "display_name": author.get("displayName") or "",
            "email_address": author.get("emailAddress") or "",
        },
        # ADF bodies are kept as serialized JSON.
        "body": json.dumps(comment["body"]) if comment.get("body") else "",
    }


def to_issue(issue: dict[str, Any], site_url: str) -> dict[str, Any]:
    fields = issue.get("fields") or {}
    project = fields.get("project") or {}
    assignee = fields.get("assignee") or {}
    comments = (fields.get("comment") or {}).get("comments") or []
    return {
        "id": issue.get("id"),
        "created_at": fields.get("created"),
        "updated_at": fields.get("updated"),
        "key": issue.get("key"),
        "summary": fields.get("summary") or "",
        "issue_type": (fields.get("issuetype") or {}).get("name") or "",
        "status": (fields.get("status") or {}).get("name") or "",
        "assignee": assignee.get("displayName"),
        "url": issue.get("self"),
        "web_url": f"{site_url}/browse/{issue.get('key')}",
        "project_id": project.get("id") or "",
        "project_key": project.get("key") or "",
        "project_name": project.get("name") or "",
        "comments": [to_comment(c) for c in comments] or None,
    }


def to_project(project: dict[str, Any], site_url: str) -> dict[str, Any]:
    return {
        "id": project.get("id"),
        "key": project.get("key"),
        "name": project.get("name"),
        "url": project.get("self"),
        "project_type_key": project.get("projectTypeKey") or "",
        "web_url": f"{site_url}/browse/{project.get('key')}",
    }


def to_issue_type(issue_type: dict[str, Any], project_id: str = "") -> dict[str, Any]:
    return {
        "project_id": project_id,
        "id": issue_type.get("id"),
        "name": issue_type.get("name"),
        "description": issue_type.get("description") or "",
        "url": issue_type.get("self"),
    }


def to_user(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "account_id": user.get("accountId"),
        "display_name": user.get("displayName") or "",
        "email_address": user.get("emailAddress") or "",
        "active": user.get("active") or False,
        "time_zone": user.get("timeZone") or "",
    }


def to_status(status: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": status.get("id"),
        "name": status.get("name"),
        "description": status.get("description") or "",
        "status_category": (status.get("statusCategory") or {}).get("name") or "",
    }


def issue_fields(attrs: Mapping[str, Any], *, creating: bool) -> dict[str, Any]:
    """Build the ``fields`` object for issue create/update."""
    fields: dict[str, Any] = {}
    if attrs.get("summary"):
        fields["summary"] = attrs["summary"]
    if creating:
        fields["project"] = {"key": attrs.get("project")}
        fields["issuetype"] = {"name": attrs.get("issue_type")}
    if attrs.get("description"):
        fields["description"] = to_adf(attrs["description"])
    if attrs.get("assignee"):
        fields["assignee"] = {"accountId": attrs["assignee"]}
    if attrs.get("labels"):
        fields["labels"] = split_csv(attrs["labels"])
    return fields
