"""Box connector: files, folders, users and local file sync.

Auth priority: BOX_ACCESS_TOKEN, then an authorization-code exchange, then a
refresh-token exchange. Exchanged tokens are cached until five minutes
before Box says they expire.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import httpx
import structlog

from src.resolvers.box import mappers
from src.resolvers.box.config import BoxSettings, get_box_settings
from src.resolvers.config import get_settings
from src.resolvers.core.auth import TokenCache, exchange_token
from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import Success, returns_result

logger = structlog.get_logger(__name__)

ITEM_FIELDS = "id,name,modified_at,shared_link"
PAGE_LIMIT = 100


def _flag(value: Any) -> str:
    return "true" if str(value).lower() == "true" else "false"


def get_file_unique_name(file_name: str | None, file_id: str, original_name: str) -> str:
    """Local name for a synced file: the requested name or ``<id><name>``."""
    return file_name or f"{file_id}{original_name}"


class BoxResolver(ResolverBase):
    NAMESPACE = "box"

    def __init__(
        self,
        settings: BoxSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        fs_root: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_box_settings()
        self.fs_root = Path(fs_root) if fs_root is not None else get_settings().fs_path()
        self._tokens = TokenCache()
        self._refresh_token = self.settings.BOX_REFRESH_TOKEN
        self._auth_code_used = False
        self.http = HttpClient("box", self.settings.BOX_BASE_URL, auth=self._auth_headers, transport=transport)

    # ── Auth ──────────────────────────────────────────────────────────────

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached

        s = self.settings
        if s.BOX_ACCESS_TOKEN:
            return self._tokens.set(s.BOX_ACCESS_TOKEN)

        if s.BOX_CLIENT_ID and s.BOX_CLIENT_SECRET and s.BOX_AUTH_CODE and not self._auth_code_used:
            data = {
                "grant_type": "authorization_code",
                "code": s.BOX_AUTH_CODE,
                "client_id": s.BOX_CLIENT_ID,
                "client_secret": s.BOX_CLIENT_SECRET,
            }
        elif s.BOX_CLIENT_ID and s.BOX_CLIENT_SECRET and self._refresh_token:
            data = {
                "grant_type": "refresh_token",
                "refresh_token": self._refresh_token,
                "client_id": s.BOX_CLIENT_ID,
                "client_secret": s.BOX_CLIENT_SECRET,
            }
        else:
            raise ConfigError(
                "Box authentication is required: BOX_ACCESS_TOKEN or OAuth2 credentials "
                "(BOX_CLIENT_ID, BOX_CLIENT_SECRET, and BOX_AUTH_CODE or BOX_REFRESH_TOKEN)"
            )

        body = await exchange_token(self.http, s.BOX_TOKEN_URL, data)
        self._auth_code_used = self._auth_code_used or data["grant_type"] == "authorization_code"
        # Box rotates refresh tokens; auth codes are single use.
        if body.get("refresh_token"):
            self._refresh_token = body["refresh_token"]
        return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._access_token()}"}

    async def _folder_items(self, folder_id: str = "0", marker: str | None = None) -> dict:
        params: dict[str, Any] = {"fields": ITEM_FIELDS, "limit": PAGE_LIMIT}
        if marker:
            params["marker"] = marker
        return await self.http.get(f"/2.0/folders/{folder_id}/items", params=params)

    # ── Files ─────────────────────────────────────────────────────────────

    async def _list_files(self) -> list[Instance]:
        entries = (await self._folder_items()).get("entries") or []
        files = [e for e in entries if e.get("type") == "file"]
        return self._instances("File", files, mappers.to_file, limit=PAGE_LIMIT)

    @returns_result
    async def query_file(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        file_id = path_id(query)
        if file_id:
            file = await self.http.get(f"/2.0/files/{file_id}", params={"fields": ITEM_FIELDS})
            return [self._instance("File", mappers.to_file(file))]
        return await self._list_files()

    @returns_result
    async def update_file(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        file_id = attrs.get("id")
        if not file_id:
            raise RequiredFieldError("File ID is required")
        data = {k: new_attrs[k] for k in ("name", "description") if new_attrs.get(k)}
        result = await self.http.put(f"/2.0/files/{file_id}", json=data)
        return self._instance("File", mappers.to_file(result))

    @returns_result
    async def delete_file(self, attrs: Mapping[str, Any]) -> None:
        file_id = attrs.get("id")
        if not file_id:
            raise RequiredFieldError("File ID is required")
        await self.http.delete(f"/2.0/files/{file_id}")

    async def _download(self, file_id: str) -> bytes:
        return await self.http.get(
            f"/2.0/files/{file_id}/content",
            raw=True,
            timeout=HttpClient.TIMEOUT_DOWNLOAD,
            follow_redirects=True,
        )

    @returns_result
    async def query_file_content(self, query: Mapping[str, Any] | None = None) -> bytes:
        file_id = path_id(query)
        if not file_id:
            raise RequiredFieldError("File ID is required")
        await self.http.get(f"/2.0/files/{file_id}", params={"fields": "id,name,size,modified_at"})
        return await self._download(file_id)

    @returns_result
    async def upload_file(self, file_name: str, upload_name: str | None = None) -> Instance:
        """Upload ``FS_ROOT/file_name`` to the root folder."""
        if not file_name:
            raise RequiredFieldError("File name is required")
        local_path = self.fs_root / file_name
        name = upload_name or local_path.name
        content = local_path.read_bytes()
        # Box requires the attributes part before the file part.
        files = {
            "attributes": (None, json.dumps({"name": name, "parent": {"id": "0"}})),
            "file": (name, content),
        }
        result = await self.http.post(
            self.settings.BOX_UPLOAD_URL,
            files=files,
            timeout=HttpClient.TIMEOUT_UPLOAD,
        )
        uploaded = (result.get("entries") or [result])[0]
        logger.info("box_file_uploaded", file_id=uploaded.get("id"), name=name, size=len(content))
        mapped = mappers.to_file(uploaded)
        mapped["name"] = name
        return self._instance("File", mapped)

    @returns_result
    async def sync_remote_file(self, file_id: str, file_name: str | None = None) -> Instance:
        """Download a Box file into FS_ROOT and return it with its local path."""
        if not file_id:
            raise RequiredFieldError("File ID is required")
        meta = await self.http.get(f"/2.0/files/{file_id}", params={"fields": "id,name,size,modified_at"})
        content = await self._download(file_id)
        local_path = self.fs_root / get_file_unique_name(file_name, meta.get("id", file_id), meta.get("name", ""))
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(content)
        logger.info("box_file_synced", file_id=file_id, path=str(local_path))
        return self._instance(
            "File",
            {
                "id": meta.get("id"),
                "name": meta.get("name"),
                "download_url": str(local_path),
                "modified_at": meta.get("modified_at"),
            },
        )

    # ── Folders ───────────────────────────────────────────────────────────

    async def _list_folders(self) -> list[Instance]:
        entries = (await self._folder_items()).get("entries") or []
        folders = [e for e in entries if e.get("type") == "folder"]
        return self._instances("Folder", folders, mappers.to_folder, limit=PAGE_LIMIT)

    @returns_result
    async def create_folder(self, attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("name"):
            raise RequiredFieldError("Folder name is required")
        body = {"name": attrs["name"], "parent": {"id": attrs.get("parent_id") or "0"}}
        result = await self.http.post("/2.0/folders", json=body)
        return self._instance("Folder", mappers.to_folder(result))

    @returns_result
    async def query_folder(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        folder_id = path_id(query)
        if folder_id:
            folder = await self.http.get(f"/2.0/folders/{folder_id}", params={"fields": ITEM_FIELDS})
            return [self._instance("Folder", mappers.to_folder(folder))]
        return await self._list_folders()

    @returns_result
    async def update_folder(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        folder_id = attrs.get("id")
        if not folder_id:
            raise RequiredFieldError("Folder ID is required")
        data = {k: new_attrs[k] for k in ("name", "description") if new_attrs.get(k)}
        result = await self.http.put(f"/2.0/folders/{folder_id}", json=data)
        return self._instance("Folder", mappers.to_folder(result))

    @returns_result
    async def delete_folder(self, attrs: Mapping[str, Any]) -> None:
        folder_id = attrs.get("id")
        if not folder_id:
            raise RequiredFieldError("Folder ID is required")
        await self.http.delete(f"/2.0/folders/{folder_id}", params={"recursive": _flag(attrs.get("recursive"))})

    @returns_result
    async def query_folder_content(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        listing = await self._folder_items(query.get("id") or "0", query.get("marker"))
        return [self._instance("FolderContent", mappers.to_folder_content(listing))]

    @returns_result
    async def get_folder_content(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        listing = await self._folder_items(path_id(query) or "0")
        return [self._instance("FolderContent", mappers.to_folder_content(listing))]

    # ── Users ─────────────────────────────────────────────────────────────

    async def _list_users(self) -> list[Instance]:
        body = await self.http.get("/2.0/users", params={"limit": PAGE_LIMIT})
        return self._instances("User", body.get("entries") or [], mappers.to_user, limit=PAGE_LIMIT)

    async def _create_user(self, attrs: Mapping[str, Any]) -> Instance:
        first, last, email = attrs.get("first_name"), attrs.get("last_name"), attrs.get("email")
        if not first or not last or not email:
            raise RequiredFieldError("First name, last name, and email are required")
        result = await self.http.post("/2.0/users", json={"name": f"{first} {last}", "login": email})
        return self._instance("User", mappers.to_user(result))

    async def _delete_user(self, attrs: Mapping[str, Any]) -> None:
        user_id = attrs.get("id")
        if not user_id:
            raise RequiredFieldError("User ID is required")
        await self.http.delete(
            f"/2.0/users/{user_id}",
            params={"force": _flag(attrs.get("force")), "notify": _flag(attrs.get("notify"))},
        )

    @returns_result
    async def create_user(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create_user(attrs)

    @returns_result
    async def query_user(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        user_id = path_id(query)
        if user_id:
            return [self._instance("User", mappers.to_user(await self.http.get(f"/2.0/users/{user_id}")))]
        return await self._list_users()

    @returns_result
    async def update_user(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        user_id = attrs.get("id")
        if not user_id:
            raise RequiredFieldError("User ID is required")
        data: dict[str, Any] = {}
        first, last = new_attrs.get("first_name"), new_attrs.get("last_name")
        if first or last:
            first = first or attrs.get("first_name") or ""
            last = last or attrs.get("last_name") or ""
            data["name"] = f"{first} {last}".strip()
        if new_attrs.get("email"):
            data["login"] = new_attrs["email"]
        result = await self.http.put(f"/2.0/users/{user_id}", json=data)
        return self._instance("User", mappers.to_user(result))

    @returns_result
    async def delete_user(self, attrs: Mapping[str, Any]) -> None:
        await self._delete_user(attrs)

    @returns_result
    async def create_user_action(self, attrs: Mapping[str, Any]) -> Instance:
        return await self._create_user(attrs)

    @returns_result
    async def delete_user_action(self, attrs: Mapping[str, Any]) -> Success:
        await self._delete_user(attrs)
        return Success(id=str(attrs.get("id")))

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_files(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("files", self._list_files, sink, self.settings.BOX_POLL_INTERVAL_MINUTES)

    async def subscribe_folders(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("folders", self._list_folders, sink, self.settings.BOX_POLL_INTERVAL_MINUTES)

    async def subscribe_users(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe("users", self._list_users, sink, self.settings.BOX_POLL_INTERVAL_MINUTES)
