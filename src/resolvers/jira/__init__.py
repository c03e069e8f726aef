"""Jira Cloud connector (REST API v3 through api.atlassian.com)."""

from src.resolvers.jira.config import JiraSettings, get_jira_settings
from src.resolvers.jira.resolver import JiraResolver, authorization_for

__all__ = ["JiraResolver", "JiraSettings", "get_jira_settings", "authorization_for"]
