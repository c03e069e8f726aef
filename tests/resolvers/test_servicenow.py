"""Tests for the ServiceNow connector: open-record selection, journals, updates, auth."""

from __future__ import annotations

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.servicenow.config import ServiceNowSettings
from src.resolvers.servicenow.mappers import join_comments, to_record, update_payload
from src.resolvers.servicenow.resolver import ServiceNowResolver

INSTANCE = "https://acme.service-now.com"
INCIDENTS = "/api/now/table/incident"
JOURNAL = "/api/now/table/sys_journal_field"


def _resolver(vendor, **overrides):
    values = {"SERVICENOW_INSTANCE_URL": INSTANCE, **overrides}
    return ServiceNowResolver(ServiceNowSettings(_env_file=None, **values), transport=vendor.transport)


@pytest.fixture
def resolver(vendor):
    return _resolver(vendor, SERVICENOW_USERNAME="admin", SERVICENOW_PASSWORD="pw")


def _incident(sys_id="abc", **extra):
    return {
        "sys_id": sys_id,
        "number": "INC001",
        "short_description": "Printer on fire",
        "state": "1",
        "u_ai_requires_human": "true",
        **extra,
    }


# ── Auth ──────────────────────────────────────────────────────────────────


class TestAuth:
    @pytest.mark.asyncio
    async def test_basic_wins_over_oauth(self, vendor):
        vendor.add("GET", "/api/now/table/sc_task", {"result": []})
        resolver = _resolver(
            vendor,
            SERVICENOW_USERNAME="admin",
            SERVICENOW_PASSWORD="pw",
            SERVICENOW_CLIENT_ID="c",
            SERVICENOW_CLIENT_SECRET="s",
            SERVICENOW_REFRESH_TOKEN="r",
        )
        await resolver.query_tasks()

        assert vendor.calls("POST") == []
        assert vendor.last().headers["Authorization"].startswith("Basic ")
        assert "content-type" not in vendor.last().headers

    @pytest.mark.asyncio
    async def test_oauth_token_refreshed_once_on_401(self, vendor):
        vendor.add("POST", "/oauth_token.do", {"access_token": "t1", "expires_in": 1800})
        vendor.add("POST", "/oauth_token.do", {"access_token": "t2", "expires_in": 1800})
        vendor.add("GET", "/api/now/table/sc_task", {"error": "expired"}, status=401)
        vendor.add("GET", "/api/now/table/sc_task", {"result": []})
        resolver = _resolver(vendor, SERVICENOW_CLIENT_ID="c", SERVICENOW_CLIENT_SECRET="s", SERVICENOW_REFRESH_TOKEN="r")

        result = await resolver.query_tasks()

        assert result.ok
        assert len(vendor.calls("POST", "/oauth_token.do")) == 2
        attempts = vendor.calls("GET", "/api/now/table/sc_task")
        assert [r.headers["Authorization"] for r in attempts] == ["Bearer t1", "Bearer t2"]

    @pytest.mark.asyncio
    async def test_no_auth_configured(self, vendor):
        result = await _resolver(vendor).query_incidents()
        assert result.kind is ErrorKind.config
        assert "No authentication method configured" in result.message


# ── Records ───────────────────────────────────────────────────────────────


class TestQueries:
    @pytest.mark.asyncio
    async def test_lookback_query_restricted_to_open_states(self, resolver, vendor):
        vendor.add("GET", INCIDENTS, {"result": [_incident()]})
        vendor.add("GET", JOURNAL, {"result": [{"value": "short"}, {"value": "Still smoking after reboot"}]})

        result = await resolver.query_incidents()

        query = vendor.last("GET", INCIDENTS).url.params["sysparm_query"]
        assert query.startswith("stateIN1,2^active=true^sys_created_on>=javascript:gs.hoursAgoStart(100000)")
        record = result.value[0]
        assert record["__path__"] == "servicenow/incident/abc"
        assert record["status"] == "1"
        data = record["data"]
        assert data["comments"] == "\nStill smoking after reboot"
        assert data["requires_human"] is True

    @pytest.mark.asyncio
    async def test_selected_sys_ids_override_lookback(self, vendor):
        vendor.add("GET", "/api/now/table/sc_task", {"result": []})
        resolver = _resolver(vendor, SERVICENOW_USERNAME="u", SERVICENOW_PASSWORD="p", SELECT_TASKS="a1, b2")
        await resolver.query_tasks()

        params = vendor.last().url.params
        assert params["sysparm_query"] == "stateIN1,2^sys_id=a1^OR^sys_id=b2"
        assert params["sysparm_limit"] == "100"

    @pytest.mark.asyncio
    async def test_single_record_by_sys_id_with_table_suffix(self, resolver, vendor):
        vendor.add("GET", f"{INCIDENTS}/abc", {"result": _incident()})
        vendor.add("GET", JOURNAL, {"result": []})
        result = await resolver.query_incidents({"sys_id": "abc/incident"})
        assert [r["sys_id"] for r in result.value] == ["abc"]

    @pytest.mark.asyncio
    async def test_journal_failure_yields_empty_comments(self, resolver, vendor):
        vendor.add("GET", INCIDENTS, {"result": [_incident()]})
        vendor.add("GET", JOURNAL, {"error": "forbidden"}, status=403)
        result = await resolver.query_incidents()

        data = result.value[0]["data"]
        assert data["comments"] == ""
        assert data["description"] == "Printer on fire"


class TestUpdates:
    @pytest.mark.asyncio
    async def test_update_incident_maps_ai_fields(self, resolver, vendor):
        vendor.add("PATCH", f"{INCIDENTS}/abc", {"result": {"sys_id": "abc", "u_ai_status": "done"}})
        result = await resolver.update_incident(
            {"sys_id": "abc"},
            {"ai_status": "done", "data": {"comment": "Handled", "category": "hardware"}},
        )

        assert vendor.json(vendor.last("PATCH")) == {
            "comments": "Handled",
            "u_ai_status": "done",
            "u_ai_category": "hardware",
        }
        assert result.value["data"]["u_ai_status"] == "done"

    @pytest.mark.asyncio
    async def test_suffix_routes_to_task_table(self, resolver, vendor):
        vendor.add("PATCH", "/api/now/table/sc_task/t1", {"result": {}})
        await resolver.update_instance("incident", {"sys_id": "t1/task"}, {"data": {"work_note": "x"}})
        assert vendor.json(vendor.last("PATCH")) == {"work_notes": "x"}

    @pytest.mark.asyncio
    async def test_empty_update_skips_request(self, resolver, vendor):
        result = await resolver.update_task({"sys_id": "t1"}, {})
        assert result.ok
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_unknown_entity_type(self, resolver):
        result = await resolver.update_instance("change_request", {"sys_id": "x"}, {})
        assert result.kind is ErrorKind.validation


class TestManager:
    @pytest.mark.asyncio
    async def test_manager_lookup(self, vendor):
        vendor.add("GET", "/api/now/table/sys_user", {"result": [{"sys_id": "u9"}]})
        resolver = _resolver(vendor, SERVICENOW_USERNAME="u", SERVICENOW_PASSWORD="p", MANAGER_USERNAME="boss")

        result = await resolver.get_manager_user()
        assert result.value == {"id": "u9"}
        assert vendor.last().url.params["sysparm_query"] == "user_name=boss"

    @pytest.mark.asyncio
    async def test_manager_missing_is_not_found(self, vendor):
        vendor.add("GET", "/api/now/table/sys_user", {"result": []})
        resolver = _resolver(vendor, SERVICENOW_USERNAME="u", SERVICENOW_PASSWORD="p", SERVICENOW_MANAGER_USERNAME="x")
        result = await resolver.get_manager_user()
        assert result.kind is ErrorKind.not_found


class TestMappers:
    def test_short_journal_entries_dropped(self):
        assert join_comments([{"value": "ok"}, {"value": "a" * 16}]) == "\n" + "a" * 16

    def test_task_without_journal_uses_description(self):
        record = to_record({"short_description": "Order laptop", "description": "For new hire"})
        assert record["comments"] == "For new hire"
        assert record["description"] == "Order laptop\nFor new hire"
        assert record["requires_human"] is False

    def test_direct_attribute_beats_data(self):
        payload = update_payload({"resolution": "direct", "data": {"resolution": "nested"}}, incident=True)
        assert payload == {"u_ai_resolution": "direct"}


@pytest.mark.asyncio
async def test_incidents_subscription(resolver, vendor, sink):
    vendor.add("GET", INCIDENTS, {"result": [_incident("i1"), _incident("i2")]})
    vendor.add("GET", JOURNAL, {"result": []})
    task = await resolver.subscribe_incidents(sink)
    task.stop()
    assert [i["sys_id"] for i in sink.instances] == ["i1", "i2"]
