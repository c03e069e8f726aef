"""Microsoft Teams messaging over Graph.

Auth headers are not held locally: each call asks the integration manager
for the current Graph headers. Every path segment is percent-encoded,
including ``/``.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from src.resolvers.core.errors import ConfigError, RequiredFieldError, VendorError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.result import returns_result
from src.resolvers.teams.config import TeamsSettings, get_teams_settings

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "text"


def encode_segment(value: Any) -> str:
    """Percent-encode one path segment the way JavaScript's encodeURIComponent does."""
    return quote(str(value), safe="!'()*")


def message_body(message: str, content_type: str | None = None) -> dict[str, Any]:
    return {"body": {"contentType": content_type or DEFAULT_CONTENT_TYPE, "content": message}}


class TeamsResolver:
    NAMESPACE = "teams"

    def __init__(
        self,
        settings: TeamsSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_teams_settings()
        self.http = HttpClient(
            "teams",
            self.settings.TEAMS_GRAPH_URL,
            auth=self._auth_headers,
            transport=transport,
        )

    async def _auth_headers(self) -> dict[str, str]:
        if not self.settings.INTEG_MANAGER_HOST:
            raise ConfigError("Teams configuration is required: INTEG_MANAGER_HOST")
        body = await self.http.request(
            "GET",
            f"{self.settings.INTEG_MANAGER_HOST.rstrip('/')}/integmanager.auth/authHeaders",
            params={"integrationName": self.settings.TEAMS_INTEGRATION_NAME},
            authenticate=False,
        )
        headers = body.get("headers") if isinstance(body, dict) else None
        if not headers:
            raise VendorError("Integration manager returned no auth headers for teams", code="auth_headers")
        return dict(headers)

    async def _values(self, path: str) -> list[dict]:
        body = await self.http.get(path)
        return body.get("value") or []

    async def _post_message(self, path: str, message: str, content_type: str | None) -> str:
        if not message:
            raise RequiredFieldError("Message content is required")
        result = await self.http.post(path, json=message_body(message, content_type))
        logger.info("teams_message_sent", path=path, id=result.get("id"))
        return result.get("id")

    # ── Discovery ─────────────────────────────────────────────────────────

    @returns_result
    async def joined_teams(self) -> list[dict]:
        return await self._values("/me/joinedTeams")

    @returns_result
    async def list_channels(self, team_id: str) -> list[dict]:
        return await self._values(f"/teams/{encode_segment(team_id)}/channels")

    @returns_result
    async def list_thread_replies(self, team_id: str, channel_id: str, message_id: str) -> list[dict]:
        return await self._values(
            f"/teams/{encode_segment(team_id)}/channels/{encode_segment(channel_id)}"
            f"/messages/{encode_segment(message_id)}/replies"
        )

    # ── Messaging ─────────────────────────────────────────────────────────

    @returns_result
    async def send_channel_message(
        self, team_id: str, channel_id: str, message: str, content_type: str | None = None
    ) -> str:
        path = f"/teams/{encode_segment(team_id)}/channels/{encode_segment(channel_id)}/messages"
        return await self._post_message(path, message, content_type)

    @returns_result
    async def reply_to_thread(
        self,
        team_id: str,
        channel_id: str,
        message_id: str,
        message: str,
        content_type: str | None = None,
    ) -> str:
        path = (
            f"/teams/{encode_segment(team_id)}/channels/{encode_segment(channel_id)}"
            f"/messages/{encode_segment(message_id)}/replies"
        )
        return await self._post_message(path, message, content_type)

    @returns_result
    async def send_direct_message(self, user_id: str, message: str, content_type: str | None = None) -> str:
        """Open (or reuse) the oneOnOne chat with ``user_id`` and post into it."""
        if not user_id:
            raise RequiredFieldError("User ID is required")
        chat = await self.http.post(
            "/chats",
            json={
                "chatType": "oneOnOne",
                "members": [
                    {
                        "@odata.type": "#microsoft.graph.aadUserConversationMember",
                        "roles": ["owner"],
                        "user@odata.bind": f"{self.settings.TEAMS_GRAPH_URL}/users('{encode_segment(user_id)}')",
                    }
                ],
            },
        )
        return await self._post_message(f"/chats/{encode_segment(chat.get('id'))}/messages", message, content_type)
