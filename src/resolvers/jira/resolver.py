"""Jira Cloud connector: issues, projects, issue types, users and statuses.

Auth priority:
1. JIRA_ACCESS_TOKEN
2. JIRA_EMAIL + JIRA_API_TOKEN (Basic)
3. OAuth2 client credentials (JIRA_CLIENT_ID / JIRA_CLIENT_SECRET)

All calls go through ``https://api.atlassian.com/ex/jira/{cloud_id}``.
"""

from __future__ import annotations

import base64
from typing import Any, Mapping

import httpx
import structlog

from src.resolvers.core.auth import TokenCache, exchange_token
from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result
from src.resolvers.jira import mappers
from src.resolvers.jira.config import JiraSettings, get_jira_settings

logger = structlog.get_logger(__name__)

ISSUE_SEARCH_JQL = "ORDER BY updated DESC"
MAX_RESULTS = 100


def authorization_for(token: str) -> str:
    """Bearer for OAuth tokens, Basic for ``email:api_token`` style tokens.

    OAuth2 access tokens are long and never contain a colon.
    """
    if ":" not in token and len(token) > 50:
        return f"Bearer {token}"
    return "Basic " + base64.b64encode(token.encode("utf-8")).decode("ascii")


class JiraResolver(ResolverBase):
    NAMESPACE = "jira"

    def __init__(
        self,
        settings: JiraSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_jira_settings()
        self._tokens = TokenCache()
        self.http = HttpClient(
            "jira",
            self.settings.JIRA_API_URL,
            auth=self._auth_headers,
            headers={"Accept": "application/json", "X-Atlassian-Token": "no-check"},
            transport=transport,
        )

    # ── Auth / config ─────────────────────────────────────────────────────

    def _cloud(self) -> tuple[str, str]:
        s = self.settings
        if not s.JIRA_CLOUD_ID or not s.JIRA_BASE_URL:
            raise ConfigError("Jira configuration is required: JIRA_CLOUD_ID and JIRA_BASE_URL")
        return s.JIRA_CLOUD_ID, s.JIRA_BASE_URL.rstrip("/")

    def _api(self, path: str) -> str:
        cloud_id, _ = self._cloud()
        return f"/ex/jira/{cloud_id}/rest/api/3{path}"

    @property
    def _site(self) -> str:
        return self._cloud()[1]

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached

        s = self.settings
        if s.JIRA_ACCESS_TOKEN:
            return self._tokens.set(s.JIRA_ACCESS_TOKEN)
        if s.JIRA_EMAIL and s.JIRA_API_TOKEN:
            return self._tokens.set(f"{s.JIRA_EMAIL}:{s.JIRA_API_TOKEN}")
        if s.JIRA_CLIENT_ID and s.JIRA_CLIENT_SECRET:
            body = await exchange_token(
                self.http,
                s.JIRA_TOKEN_URL,
                {
                    "grant_type": "client_credentials",
                    "client_id": s.JIRA_CLIENT_ID,
                    "client_secret": s.JIRA_CLIENT_SECRET,
                    "audience": "api.atlassian.com",
                },
            )
            return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

        raise ConfigError(
            "Jira authentication is required: JIRA_ACCESS_TOKEN, API token (JIRA_EMAIL, JIRA_API_TOKEN), "
            "or OAuth2 credentials (JIRA_CLIENT_ID, JIRA_CLIENT_SECRET)"
        )

    async def _auth_headers(self) -> dict[str, str]:
        self._cloud()
        return {"Authorization": authorization_for(await self._access_token())}

    # ── Issues ────────────────────────────────────────────────────────────

    async def _post_issue(self, attrs: Mapping[str, Any]) -> dict:
        if not attrs.get("summary") or not attrs.get("project") or not attrs.get("issue_type"):
            raise RequiredFieldError("Summary, project, and issue_type are required")
        result = await self.http.post(self._api("/issue"), json={"fields": mappers.issue_fields(attrs, creating=True)})
        logger.info("jira_issue_created", key=result.get("key"))
        return {"id": result.get("id"), "key": result.get("key"), "self": result.get("self")}

    async def _list_issues(self) -> list[Instance]:
        body = await self.http.get(
            self._api("/search"),
            params={"jql": ISSUE_SEARCH_JQL, "maxResults": MAX_RESULTS, "expand": "comments"},
        )
        return self._instances("Issue", body.get("issues") or [], mappers.to_issue, self._site, limit=MAX_RESULTS)

    @returns_result
    async def create_issue(self, attrs: Mapping[str, Any]) -> Instance:
        return self._instance("Issue", await self._post_issue(attrs))

    @returns_result
    async def query_issue(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        issue_id = path_id(query)
        if issue_id:
            issue = await self.http.get(self._api(f"/issue/{issue_id}"), params={"expand": "comments"})
            return [self._instance("Issue", mappers.to_issue(issue, self._site))]
        return await self._list_issues()

    @returns_result
    async def update_issue(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Issue ID is required")
        fields = mappers.issue_fields(new_attrs, creating=False)
        await self.http.put(self._api(f"/issue/{attrs['id']}"), json={"fields": fields})
        # Jira answers 204 with no body.
        return self._instance("Issue", {"id": attrs["id"]})

    @returns_result
    async def delete_issue(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Issue ID is required")
        await self.http.delete(self._api(f"/issue/{attrs['id']}"))

    @returns_result
    async def create_issue_action(self, attrs: Mapping[str, Any]) -> Instance:
        return self._instance("CreateIssueOutput", await self._post_issue(attrs))

    @returns_result
    async def query_create_issue(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        issue_id = path_id(query)
        if not issue_id:
            raise RequiredFieldError("Issue ID is required")
        issue = await self.http.get(self._api(f"/issue/{issue_id}"))
        output = {"id": issue.get("id"), "key": issue.get("key"), "self": issue.get("self")}
        return [self._instance("CreateIssueOutput", output)]

    # ── Projects ──────────────────────────────────────────────────────────

    async def _list_projects(self) -> list[Instance]:
        body = await self.http.get(self._api("/project/search"), params={"maxResults": MAX_RESULTS})
        projects = body.get("values") or []
        return self._instances("Project", projects, mappers.to_project, self._site, limit=MAX_RESULTS)

    @returns_result
    async def create_project(self, attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("key") or not attrs.get("name"):
            raise RequiredFieldError("Project key and name are required")
        data = {
            "key": attrs["key"],
            "name": attrs["name"],
            "projectTypeKey": attrs.get("project_type_key") or "software",
        }
        result = await self.http.post(self._api("/project"), json=data)
        return self._instance("Project", mappers.to_project(result, self._site))

    @returns_result
    async def query_project(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        project_id = path_id(query)
        if project_id:
            project = await self.http.get(self._api(f"/project/{project_id}"))
            return [self._instance("Project", mappers.to_project(project, self._site))]
        return await self._list_projects()

    @returns_result
    async def update_project(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Project ID is required")
        data = {k: new_attrs[k] for k in ("name", "key") if new_attrs.get(k)}
        result = await self.http.put(self._api(f"/project/{attrs['id']}"), json=data)
        return self._instance("Project", mappers.to_project(result, self._site))

    @returns_result
    async def delete_project(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Project ID is required")
        await self.http.delete(self._api(f"/project/{attrs['id']}"))

    # ── Read-only catalogs ────────────────────────────────────────────────

    async def _list_issue_types(self, project_id: str | None = None) -> list[Instance]:
        if project_id:
            types = await self.http.get(self._api("/issuetype/project"), params={"projectId": project_id})
        else:
            types = await self.http.get(self._api("/issuetype"))
        return self._instances("IssueType", types or [], mappers.to_issue_type, project_id or "")

    @returns_result
    async def query_issue_type(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._list_issue_types((query or {}).get("project_id"))

    @returns_result
    async def query_user(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        account_id = (query or {}).get("account_id")
        if account_id:
            user = await self.http.get(self._api("/user"), params={"accountId": account_id})
            return [self._instance("User", mappers.to_user(user))]
        users = await self.http.get(self._api("/users/search"), params={"maxResults": MAX_RESULTS})
        return self._instances("User", users or [], mappers.to_user, limit=MAX_RESULTS)

    @returns_result
    async def query_status(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return self._instances("Status", await self.http.get(self._api("/status")) or [], mappers.to_status)

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_issues(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("issues", self._list_issues, sink, self.settings.JIRA_POLL_INTERVAL_MINUTES)

    async def subscribe_projects(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("projects", self._list_projects, sink, self.settings.JIRA_POLL_INTERVAL_MINUTES)

    async def subscribe_issue_types(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "issue_types", self._list_issue_types, sink, self.settings.JIRA_POLL_INTERVAL_MINUTES
        )
