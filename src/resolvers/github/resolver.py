"""GitHub connector: issues, repositories, files, organizations and users.

Auth priority:
1. GITHUB_ACCESS_TOKEN
2. OAuth code exchange (GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET, GITHUB_AUTH_CODE)
3. OAuth refresh (GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET, GITHUB_REFRESH_TOKEN)
4. GitHub App installation token (GITHUB_APP_ID, GITHUB_APP_PRIVATE_KEY,
   GITHUB_INSTALLATION_ID), signed as an RS256 JWT with python-jose
"""

from __future__ import annotations

import base64
import time
from datetime import datetime, timezone
from typing import Any, Mapping

import httpx
import structlog
from jose import jwt

from src.resolvers.core.auth import TokenCache, exchange_token
from src.resolvers.core.errors import ConfigError, RequiredFieldError, ResolverError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id, split_csv
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result
from src.resolvers.github import mappers
from src.resolvers.github.config import GitHubSettings, get_github_settings

logger = structlog.get_logger(__name__)

PER_PAGE = 100
ACCEPT = "application/vnd.github.v3+json"
USER_AGENT = "GitHub-Resolver/1.0"
_REPO_FLAGS = ("private", "has_issues", "has_projects", "has_wiki")


def _is_true(value: Any) -> bool:
    return str(value).lower() == "true"


def build_app_jwt(app_id: str, private_key_b64: str, now: float | None = None) -> str:
    """Sign the short-lived JWT GitHub expects from an App."""
    issued = int(now if now is not None else time.time())
    payload = {"iat": issued - 60, "exp": issued + 600, "iss": str(app_id)}
    private_key = base64.b64decode(private_key_b64).decode("utf-8")
    return jwt.encode(payload, private_key, algorithm="RS256")


class GitHubResolver(ResolverBase):
    NAMESPACE = "github"

    def __init__(
        self,
        settings: GitHubSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_github_settings()
        self._tokens = TokenCache()
        self._auth_code_used = False
        self._refresh_token = self.settings.GITHUB_REFRESH_TOKEN
        self.http = HttpClient(
            "github",
            self.settings.GITHUB_BASE_URL,
            auth=self._auth_headers,
            headers={"Accept": ACCEPT, "User-Agent": USER_AGENT},
            transport=transport,
        )

    # ── Auth ──────────────────────────────────────────────────────────────

    async def _oauth_exchange(self, data: dict[str, str]) -> str:
        body = await exchange_token(
            self.http,
            self.settings.GITHUB_OAUTH_TOKEN_URL,
            data,
            headers={"Accept": "application/json"},
        )
        if body.get("refresh_token"):
            self._refresh_token = body["refresh_token"]
            logger.info("github_refresh_token_received")
        return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

    async def _app_installation_token(self) -> str:
        s = self.settings
        app_jwt = build_app_jwt(s.GITHUB_APP_ID, s.GITHUB_APP_PRIVATE_KEY)
        body = await self.http.post(
            f"/app/installations/{s.GITHUB_INSTALLATION_ID}/access_tokens",
            headers={"Authorization": f"Bearer {app_jwt}"},
            authenticate=False,
        )
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise ConfigError("GitHub App authentication failed: no installation token returned")
        expires_in = 3600.0
        if body.get("expires_at"):
            expires_at = datetime.fromisoformat(body["expires_at"].replace("Z", "+00:00"))
            expires_in = (expires_at - datetime.now(timezone.utc)).total_seconds()
        logger.info("github_app_token_issued", installation_id=s.GITHUB_INSTALLATION_ID)
        return self._tokens.set(token, expires_in)

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached

        s = self.settings
        if s.GITHUB_ACCESS_TOKEN:
            return self._tokens.set(s.GITHUB_ACCESS_TOKEN)
        if s.GITHUB_CLIENT_ID and s.GITHUB_CLIENT_SECRET and s.GITHUB_AUTH_CODE and not self._auth_code_used:
            self._auth_code_used = True
            return await self._oauth_exchange(
                {"client_id": s.GITHUB_CLIENT_ID, "client_secret": s.GITHUB_CLIENT_SECRET, "code": s.GITHUB_AUTH_CODE}
            )
        if s.GITHUB_CLIENT_ID and s.GITHUB_CLIENT_SECRET and self._refresh_token:
            return await self._oauth_exchange(
                {
                    "client_id": s.GITHUB_CLIENT_ID,
                    "client_secret": s.GITHUB_CLIENT_SECRET,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                }
            )
        if s.GITHUB_APP_PRIVATE_KEY and s.GITHUB_APP_ID and s.GITHUB_INSTALLATION_ID:
            return await self._app_installation_token()
        raise ConfigError(
            "GitHub authentication is required: GITHUB_ACCESS_TOKEN, OAuth2 credentials "
            "(GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET, GITHUB_AUTH_CODE), or GitHub App credentials "
            "(GITHUB_APP_PRIVATE_KEY, GITHUB_APP_ID, GITHUB_INSTALLATION_ID)"
        )

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._access_token()}"}

    # ── Issues ────────────────────────────────────────────────────────────

    async def _list_issues(self) -> list[Instance]:
        repos = await self.http.get("/user/repos", params={"per_page": PER_PAGE})
        issues: list[Instance] = []
        for repo in (repos or [])[:PER_PAGE]:
            owner, name = (repo.get("owner") or {}).get("login"), repo.get("name")
            try:
                records = await self.http.get(
                    f"/repos/{owner}/{name}/issues", params={"state": "all", "per_page": PER_PAGE}
                )
            except ResolverError as exc:
                logger.warning("github_repo_issues_skipped", repo=repo.get("full_name"), error=exc.message)
                continue
            issues.extend(self._instances("Issue", records or [], mappers.to_issue, owner, name, limit=PER_PAGE))
        return issues

    @returns_result
    async def create_issue(self, attrs: Mapping[str, Any]) -> Instance:
        owner, repo, title = attrs.get("owner"), attrs.get("repo"), attrs.get("title")
        if not owner or not repo or not title:
            raise RequiredFieldError("Owner, repo, and title are required")
        data: dict[str, Any] = {"title": title, "body": attrs.get("body") or ""}
        if attrs.get("labels"):
            data["labels"] = split_csv(attrs["labels"])
        result = await self.http.post(f"/repos/{owner}/{repo}/issues", json=data)
        return self._instance("Issue", mappers.to_issue(result, owner, repo))

    @returns_result
    async def query_issue(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        number = path_id(query)
        if not number:
            return await self._list_issues()
        owner, repo = query.get("owner"), query.get("repo")
        if not owner or not repo:
            raise RequiredFieldError("Owner and repo are required to query an issue by number")
        issue = await self.http.get(f"/repos/{owner}/{repo}/issues/{number}")
        return [self._instance("Issue", mappers.to_issue(issue, owner, repo))]

    async def _patch_issue(self, attrs: Mapping[str, Any], data: dict) -> Instance:
        owner, repo, number = attrs.get("owner"), attrs.get("repo"), attrs.get("issue_number")
        if not owner or not repo or not number:
            raise RequiredFieldError("Owner, repo, and issue_number are required")
        result = await self.http.patch(f"/repos/{owner}/{repo}/issues/{number}", json=data)
        return self._instance("Issue", mappers.to_issue(result, owner, repo))

    @returns_result
    async def update_issue(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        data: dict[str, Any] = {k: new_attrs[k] for k in ("title", "body", "state") if new_attrs.get(k)}
        if new_attrs.get("labels"):
            data["labels"] = split_csv(new_attrs["labels"])
        return await self._patch_issue(attrs, data)

    @returns_result
    async def delete_issue(self, attrs: Mapping[str, Any]) -> Instance:
        """GitHub cannot delete issues; the issue is closed instead."""
        return await self._patch_issue(attrs, {"state": "closed"})

    # ── Repositories ──────────────────────────────────────────────────────

    async def _list_repositories(self) -> list[Instance]:
        repos = await self.http.get("/user/repos", params={"per_page": PER_PAGE})
        return self._instances("Repository", repos or [], mappers.to_repository, limit=PER_PAGE)

    @returns_result
    async def create_repository(self, attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("name"):
            raise RequiredFieldError("Repository name is required")
        data = {
            "name": attrs["name"],
            "description": attrs.get("description") or "",
            "private": _is_true(attrs.get("private")),
        }
        return self._instance("Repository", mappers.to_repository(await self.http.post("/user/repos", json=data)))

    @returns_result
    async def query_repository(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        repo_id = path_id(query)
        if repo_id:
            return [self._instance("Repository", mappers.to_repository(await self.http.get(f"/repositories/{repo_id}")))]
        return await self._list_repositories()

    @returns_result
    async def update_repository(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        owner, name = attrs.get("owner"), attrs.get("name")
        if not owner or not name:
            raise RequiredFieldError("Owner and repository name are required")
        data: dict[str, Any] = {k: new_attrs[k] for k in ("name", "description", "homepage") if new_attrs.get(k)}
        for flag in _REPO_FLAGS:
            if new_attrs.get(flag):
                data[flag] = _is_true(new_attrs[flag])
        result = await self.http.patch(f"/repos/{owner}/{name}", json=data)
        return self._instance("Repository", mappers.to_repository(result))

    @returns_result
    async def delete_repository(self, attrs: Mapping[str, Any]) -> None:
        owner, name = attrs.get("owner"), attrs.get("name")
        if not owner or not name:
            raise RequiredFieldError("Owner and repository name are required")
        await self.http.delete(f"/repos/{owner}/{name}")

    # ── Files ─────────────────────────────────────────────────────────────

    async def _put_contents(self, attrs: Mapping[str, Any], content: Any, message: str) -> dict:
        owner, repo, path = attrs.get("owner"), attrs.get("repo"), attrs.get("path")
        if not owner or not repo or not path or not content:
            raise RequiredFieldError("Owner, repo, path, and content are required")
        data: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(str(content).encode("utf-8")).decode("ascii"),
        }
        if attrs.get("sha"):
            data["sha"] = attrs["sha"]
        result = await self.http.put(f"/repos/{owner}/{repo}/contents/{path}", json=data)
        return result.get("content") or {}

    @returns_result
    async def query_file(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        owner, repo, path = query.get("owner"), query.get("repo"), query.get("path")
        if not owner or not repo or not path:
            raise RequiredFieldError("Owner, repo, and path are required")
        result = await self.http.get(
            f"/repos/{owner}/{repo}/contents/{path}", params={"ref": query.get("branch") or "main"}
        )
        return [self._instance("File", mappers.to_file(result))]

    @returns_result
    async def update_file(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        content = await self._put_contents(attrs, new_attrs.get("content"), new_attrs.get("message") or "Update file")
        return self._instance(
            "File",
            {
                "id": content.get("sha"),
                "name": attrs.get("path"),
                "url": content.get("html_url"),
                "last_modified_date": datetime.now(timezone.utc).isoformat(),
            },
        )

    @returns_result
    async def delete_file(self, attrs: Mapping[str, Any]) -> None:
        owner, repo, path, sha = attrs.get("owner"), attrs.get("repo"), attrs.get("path"), attrs.get("sha")
        if not owner or not repo or not path or not sha:
            raise RequiredFieldError("Owner, repo, path, and sha are required")
        await self.http.delete(
            f"/repos/{owner}/{repo}/contents/{path}",
            json={"message": attrs.get("message") or "Delete file", "sha": sha},
        )

    @returns_result
    async def write_file(self, attrs: Mapping[str, Any]) -> Instance:
        content = await self._put_contents(attrs, attrs.get("content"), attrs.get("message") or "Write file")
        return self._instance(
            "WriteFileOutput",
            {"url": content.get("html_url"), "status": "success", "sha": content.get("sha")},
        )

    @returns_result
    async def query_write_file(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        owner, repo, path = query.get("owner"), query.get("repo"), query.get("path")
        if not owner or not repo or not path:
            raise RequiredFieldError("Owner, repo, and path are required")
        result = await self.http.get(f"/repos/{owner}/{repo}/contents/{path}")
        return [
            self._instance(
                "WriteFileOutput", {"url": result.get("html_url"), "status": "success", "sha": result.get("sha")}
            )
        ]

    @returns_result
    async def query_repo_files(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        owner, repo = query.get("owner"), query.get("repo")
        if not owner or not repo:
            raise RequiredFieldError("Owner and repo are required")
        branch = query.get("branch") or "main"
        result = await self.http.get(f"/repos/{owner}/{repo}/git/trees/{branch}", params={"recursive": 1})
        blobs = [item for item in result.get("tree") or [] if item.get("type") == "blob"]
        return self._instances("File", blobs, mappers.to_file)

    # ── Organizations / Users ─────────────────────────────────────────────

    @returns_result
    async def query_organizations(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return self._instances("Organization", await self.http.get("/user/orgs") or [], mappers.to_organization)

    @returns_result
    async def query_user(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        username = (query or {}).get("username")
        user = await self.http.get(f"/users/{username}" if username else "/user")
        return [self._instance("User", mappers.to_user(user))]

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_issues(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("issues", self._list_issues, sink, self.settings.GITHUB_POLL_INTERVAL_MINUTES)

    async def subscribe_repositories(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "repositories", self._list_repositories, sink, self.settings.GITHUB_POLL_INTERVAL_MINUTES
        )
