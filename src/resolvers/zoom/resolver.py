"""Zoom connector: users, meetings, webinars and cloud recordings.

Zoom records are passed through unmapped. Auth uses ZOOM_ACCESS_TOKEN, or a
Server-to-Server OAuth ``account_credentials`` token. A 401 drops the cached
token and the request is retried once.
"""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple

import httpx
import structlog

from src.resolvers.core.auth import TokenCache, basic_auth_header, exchange_token
from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, compact, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Success, returns_result
from src.resolvers.zoom.config import ZoomSettings, get_zoom_settings

logger = structlog.get_logger(__name__)

USER_FIELDS = (
    "first_name",
    "last_name",
    "display_name",
    "timezone",
    "dept",
    "language",
    "phone_country",
    "phone_number",
    "job_title",
    "location",
)
SESSION_FIELDS = ("topic", "type", "start_time", "duration", "timezone", "password", "agenda", "settings")


class Session(NamedTuple):
    """Meetings and webinars share one API shape."""

    entity_type: str
    path: str
    default_type: int


MEETINGS = Session("Meeting", "meetings", 2)
WEBINARS = Session("Webinar", "webinars", 5)


def _changes(new_attrs: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {k: new_attrs[k] for k in fields if new_attrs.get(k)}


def _occurrence_params(attrs: Mapping[str, Any]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if attrs.get("occurrence_id"):
        params["occurrence_id"] = attrs["occurrence_id"]
    if attrs.get("schedule_for_reminder"):
        params["schedule_for_reminder"] = "true"
    return params


class ZoomResolver(ResolverBase):
    NAMESPACE = "zoom"

    def __init__(
        self,
        settings: ZoomSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_zoom_settings()
        self._tokens = TokenCache()
        self.http = HttpClient(
            "zoom",
            self.settings.ZOOM_BASE_URL,
            auth=self._auth_headers,
            transport=transport,
            on_unauthorized=self._reset_token,
        )

    # ── Auth ──────────────────────────────────────────────────────────────

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached

        s = self.settings
        if s.ZOOM_ACCESS_TOKEN:
            return self._tokens.set(s.ZOOM_ACCESS_TOKEN)
        if s.ZOOM_ACCOUNT_ID and s.ZOOM_CLIENT_ID and s.ZOOM_CLIENT_SECRET:
            body = await exchange_token(
                self.http,
                s.ZOOM_TOKEN_URL,
                {},
                params={"grant_type": "account_credentials", "account_id": s.ZOOM_ACCOUNT_ID},
                headers={"Authorization": basic_auth_header(s.ZOOM_CLIENT_ID, s.ZOOM_CLIENT_SECRET)},
            )
            return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

        raise ConfigError(
            "Zoom authentication is required: ZOOM_ACCESS_TOKEN, or OAuth credentials "
            "(ZOOM_ACCOUNT_ID, ZOOM_CLIENT_ID, ZOOM_CLIENT_SECRET)"
        )

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._access_token()}"}

    async def _reset_token(self) -> None:
        self._tokens.invalidate()

    def _wrap(self, entity_type: str, body: Any, list_key: str | None = None) -> list[Instance]:
        records = (body.get(list_key) or []) if list_key else body
        if not isinstance(records, list):
            records = [records]
        return [self._instance(entity_type, r) for r in records]

    # ── Users ─────────────────────────────────────────────────────────────

    async def _list_users(self) -> list[Instance]:
        return self._wrap("User", await self.http.get("/users"), "users")

    @returns_result
    async def create_user(self, attrs: Mapping[str, Any]) -> Success:
        user_info = compact({"email": attrs.get("email"), **{k: attrs.get(k) for k in USER_FIELDS}})
        user_info["type"] = attrs.get("type") or 1
        result = await self.http.post("/users", json={"action": "create", "user_info": user_info})
        logger.info("zoom_user_created", user_id=result.get("id"))
        return Success(id=str(result.get("id")))

    @returns_result
    async def query_user(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        user_id = path_id(query)
        if user_id:
            return self._wrap("User", await self.http.get(f"/users/{user_id}"))
        return await self._list_users()

    @returns_result
    async def update_user(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("User ID is required for update")
        result = await self.http.patch(f"/users/{attrs['id']}", json=_changes(new_attrs, USER_FIELDS + ("type",)))
        # Zoom answers 204; fall back to the caller's record.
        return self._instance("User", result or attrs)

    @returns_result
    async def delete_user(self, attrs: Mapping[str, Any]) -> None:
        """``action`` is ``delete`` (default), ``disassociate`` or ``recover``."""
        if not attrs.get("id"):
            raise RequiredFieldError("User ID is required for deletion")
        await self.http.delete(f"/users/{attrs['id']}", params={"action": attrs.get("action") or "delete"})

    # ── Meetings and webinars ─────────────────────────────────────────────

    async def _create_session(self, kind: Session, attrs: Mapping[str, Any]) -> Success:
        host = attrs.get("host_id") or attrs.get("user_id")
        if not host:
            raise RequiredFieldError("Host ID or User ID is required")
        data = compact({k: attrs.get(k) for k in SESSION_FIELDS})
        data["type"] = attrs.get("type") or kind.default_type
        data["settings"] = attrs.get("settings") or {}
        result = await self.http.post(f"/users/{host}/{kind.path}", json=data)
        logger.info("zoom_session_created", kind=kind.path, id=result.get("id"), host=host)
        return Success(id=str(result.get("id")))

    async def _query_session(self, kind: Session, query: Mapping[str, Any] | None) -> list[Instance]:
        session_id = path_id(query)
        user_id = (query or {}).get("user_id")
        if session_id:
            return self._wrap(kind.entity_type, await self.http.get(f"/{kind.path}/{session_id}"))
        if user_id:
            return self._wrap(kind.entity_type, await self.http.get(f"/users/{user_id}/{kind.path}"), kind.path)
        raise RequiredFieldError(f"{kind.entity_type} ID or User ID is required")

    async def _update_session(self, kind: Session, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{kind.entity_type} ID is required for update")
        result = await self.http.patch(f"/{kind.path}/{attrs['id']}", json=_changes(new_attrs, SESSION_FIELDS))
        return self._instance(kind.entity_type, result or attrs)

    async def _delete_session(self, kind: Session, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError(f"{kind.entity_type} ID is required for deletion")
        await self.http.delete(f"/{kind.path}/{attrs['id']}", params=_occurrence_params(attrs) or None)

    @returns_result
    async def create_meeting(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create_session(MEETINGS, attrs)

    @returns_result
    async def query_meeting(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query_session(MEETINGS, query)

    @returns_result
    async def update_meeting(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update_session(MEETINGS, attrs, new_attrs)

    @returns_result
    async def delete_meeting(self, attrs: Mapping[str, Any]) -> None:
        await self._delete_session(MEETINGS, attrs)

    @returns_result
    async def create_webinar(self, attrs: Mapping[str, Any]) -> Success:
        return await self._create_session(WEBINARS, attrs)

    @returns_result
    async def query_webinar(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        return await self._query_session(WEBINARS, query)

    @returns_result
    async def update_webinar(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        return await self._update_session(WEBINARS, attrs, new_attrs)

    @returns_result
    async def delete_webinar(self, attrs: Mapping[str, Any]) -> None:
        await self._delete_session(WEBINARS, attrs)

    # ── Recordings ────────────────────────────────────────────────────────

    @returns_result
    async def query_recording(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        meeting_id = path_id(query) or (query or {}).get("meeting_id")
        user_id = (query or {}).get("user_id")
        if meeting_id:
            return self._wrap("Recording", await self.http.get(f"/meetings/{meeting_id}/recordings"))
        if user_id:
            return self._wrap("Recording", await self.http.get(f"/users/{user_id}/recordings"), "meetings")
        raise RequiredFieldError("Recording ID, Meeting ID, or User ID is required")

    @returns_result
    async def delete_recording(self, attrs: Mapping[str, Any]) -> None:
        """``action`` is ``trash`` (default) or ``delete``."""
        meeting_id = attrs.get("meeting_id") or attrs.get("id")
        if not meeting_id:
            raise RequiredFieldError("Meeting ID is required for deletion")
        await self.http.delete(f"/meetings/{meeting_id}/recordings", params={"action": attrs.get("action") or "trash"})

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_users(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("users", self._list_users, sink, self.settings.ZOOM_POLL_INTERVAL_MINUTES)
