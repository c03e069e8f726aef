"""Tests for the Jira Cloud connector."""

from __future__ import annotations

import json

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.jira.config import JiraSettings
from src.resolvers.jira.mappers import issue_fields, to_comment, to_issue
from src.resolvers.jira.resolver import JiraResolver, authorization_for

API = "/ex/jira/cloud-1/rest/api/3"
SITE = "https://acme.atlassian.net"


def _resolver(vendor, **overrides):
    values = {"JIRA_CLOUD_ID": "cloud-1", "JIRA_BASE_URL": f"{SITE}/", **overrides}
    return JiraResolver(JiraSettings(_env_file=None, **values), transport=vendor.transport)


@pytest.fixture
def resolver(vendor):
    return _resolver(vendor, JIRA_EMAIL="dev@acme.com", JIRA_API_TOKEN="atl-token")


class TestAuthorization:
    def test_long_colonless_token_is_bearer(self):
        token = "e" * 60
        assert authorization_for(token) == f"Bearer {token}"

    def test_email_token_pair_is_basic(self):
        # base64("a@b.c:tok")
        assert authorization_for("a@b.c:tok") == "Basic YUBiLmM6dG9r"

    @pytest.mark.asyncio
    async def test_client_credentials_exchange(self, vendor):
        vendor.add("POST", "/oauth/token", {"access_token": "x" * 80, "expires_in": 3600})
        vendor.add("GET", f"{API}/status", [])
        resolver = _resolver(vendor, JIRA_CLIENT_ID="cid", JIRA_CLIENT_SECRET="sec")

        await resolver.query_status()

        grant = vendor.form(vendor.last("POST", "/oauth/token"))
        assert grant["grant_type"] == "client_credentials"
        assert grant["audience"] == "api.atlassian.com"
        assert vendor.last("GET").headers["Authorization"] == "Bearer " + "x" * 80

    @pytest.mark.asyncio
    async def test_missing_cloud_id_is_config_failure(self, vendor):
        resolver = JiraResolver(JiraSettings(JIRA_ACCESS_TOKEN="t", _env_file=None), transport=vendor.transport)
        result = await resolver.query_project()
        assert result.kind is ErrorKind.config
        assert "JIRA_CLOUD_ID" in result.message


class TestIssues:
    @pytest.mark.asyncio
    async def test_create_wraps_description_as_adf(self, resolver, vendor):
        vendor.add("POST", f"{API}/issue", {"id": "10001", "key": "OPS-1", "self": "https://api/issue/10001"})
        result = await resolver.create_issue(
            {"summary": "Disk full", "project": "OPS", "issue_type": "Bug", "description": "df says 100%", "labels": "infra,p1"}
        )

        fields = vendor.json(vendor.last("POST"))["fields"]
        assert fields["project"] == {"key": "OPS"}
        assert fields["issuetype"] == {"name": "Bug"}
        assert fields["labels"] == ["infra", "p1"]
        assert fields["description"]["content"][0]["content"][0]["text"] == "df says 100%"
        assert result.value.attributes == {"id": "10001", "key": "OPS-1", "self": "https://api/issue/10001"}

    @pytest.mark.asyncio
    async def test_create_requires_summary_project_and_type(self, resolver, vendor):
        result = await resolver.create_issue({"summary": "x"})
        assert result.kind is ErrorKind.validation
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_update_returns_input_id(self, resolver, vendor):
        vendor.add("PUT", f"{API}/issue/10001", status=204)
        result = await resolver.update_issue({"id": "10001"}, {"summary": "Renamed"})

        assert vendor.json(vendor.last("PUT")) == {"fields": {"summary": "Renamed"}}
        assert result.value.attributes == {"id": "10001"}

    @pytest.mark.asyncio
    async def test_list_uses_search_with_comments(self, resolver, vendor):
        vendor.add("GET", f"{API}/search", {"issues": [{"id": "1", "key": "OPS-1", "fields": {}}]})
        result = await resolver.query_issue()

        assert result.value[0]["web_url"] == f"{SITE}/browse/OPS-1"
        params = vendor.last().url.params
        assert params["jql"] == "ORDER BY updated DESC"
        assert params["expand"] == "comments"


class TestMappers:
    def test_issue_flattens_fields(self):
        mapped = to_issue(
            {
                "id": "1",
                "key": "OPS-1",
                "fields": {
                    "summary": "S",
                    "issuetype": {"name": "Task"},
                    "status": {"name": "Done"},
                    "project": {"id": "100", "key": "OPS", "name": "Operations"},
                },
            },
            SITE,
        )
        assert mapped["issue_type"] == "Task"
        assert mapped["status"] == "Done"
        assert mapped["project_name"] == "Operations"
        assert mapped["assignee"] is None
        assert mapped["comments"] is None

    def test_comment_body_serialized(self):
        body = {"type": "doc", "version": 1, "content": []}
        mapped = to_comment({"id": "c1", "body": body, "author": {"accountId": "a1"}})
        assert json.loads(mapped["body"]) == body
        assert mapped["author"]["account_id"] == "a1"

    def test_update_fields_omit_project_and_type(self):
        assert issue_fields({"assignee": "acc-1"}, creating=False) == {"assignee": {"accountId": "acc-1"}}


@pytest.mark.asyncio
async def test_issue_types_for_project(resolver, vendor):
    vendor.add("GET", f"{API}/issuetype/project", [{"id": "3", "name": "Story"}])
    result = await resolver.query_issue_type({"project_id": "100"})

    assert result.value[0]["project_id"] == "100"
    assert vendor.last().url.params["projectId"] == "100"


@pytest.mark.asyncio
async def test_projects_subscription(resolver, vendor, sink):
    vendor.add("GET", f"{API}/project/search", {"values": [{"id": "100", "key": "OPS", "name": "Operations"}]})
    task = await resolver.subscribe_projects(sink)
    task.stop()
    assert sink.instances[0]["web_url"] == f"{SITE}/browse/OPS"
