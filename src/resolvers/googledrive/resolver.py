"""Google Drive connector (Drive API v3).

Auth priority:
1. GOOGLE_ACCESS_TOKEN used as-is.
2. OAuth2 refresh with GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET /
   GOOGLE_REFRESH_TOKEN, cached until five minutes before expiry.
3. Service-account credentials from GOOGLE_SERVICE_ACCOUNT_FILE.

Every listing spans shared drives (``supportsAllDrives``).
"""

from __future__ import annotations

import asyncio
import base64
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import httpx
import structlog
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from src.resolvers.config import get_settings
from src.resolvers.core.auth import TokenCache, exchange_token
from src.resolvers.core.errors import ConfigError, RequiredFieldError
from src.resolvers.core.http import HttpClient
from src.resolvers.core.instance import Instance, SubscriptionSink, path_id, to_int
from src.resolvers.core.polling import PollingTask
from src.resolvers.core.resolver import ResolverBase
from src.resolvers.core.result import returns_result
from src.resolvers.googledrive import mappers
from src.resolvers.googledrive.config import GoogleDriveSettings, get_google_drive_settings

logger = structlog.get_logger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]

DOCUMENT_FIELDS = "id,name,mimeType,webViewLink,modifiedTime"
FILE_FIELDS = "id,name,mimeType,parents,modifiedTime,createdTime,webViewLink,kind"
DRIVE_FIELDS = "id,name,kind,createdTime,hidden"
CONTENT_FIELDS = "id,name,size,mimeType,modifiedTime"
PAGE_SIZE = 100

# Simple (media) uploads are capped; larger files need a resumable session.
MAX_SIMPLE_UPLOAD_BYTES = 5 * 1024 * 1024

ALL_DRIVES = {"corpora": "allDrives", "includeItemsFromAllDrives": "true", "supportsAllDrives": "true"}


def get_file_unique_name(file_name: str | None, file_id: str, original_name: str) -> str:
    return file_name or f"{file_id}{original_name}"


class GoogleDriveResolver(ResolverBase):
    NAMESPACE = "googledrive"

    def __init__(
        self,
        settings: GoogleDriveSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        fs_root: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_google_drive_settings()
        self.fs_root = Path(fs_root) if fs_root is not None else get_settings().fs_path()
        self._tokens = TokenCache()
        self._service_credentials: service_account.Credentials | None = None
        self.http = HttpClient(
            "googledrive",
            self.settings.GOOGLE_DRIVE_BASE_URL,
            auth=self._auth_headers,
            transport=transport,
        )

    # ── Auth ──────────────────────────────────────────────────────────────

    async def _access_token(self) -> str:
        cached = self._tokens.get()
        if cached:
            return cached

        s = self.settings
        if s.GOOGLE_ACCESS_TOKEN:
            return self._tokens.set(s.GOOGLE_ACCESS_TOKEN)

        if s.GOOGLE_CLIENT_ID and s.GOOGLE_CLIENT_SECRET and s.GOOGLE_REFRESH_TOKEN:
            body = await exchange_token(
                self.http,
                s.GOOGLE_TOKEN_URL,
                {
                    "client_id": s.GOOGLE_CLIENT_ID,
                    "client_secret": s.GOOGLE_CLIENT_SECRET,
                    "refresh_token": s.GOOGLE_REFRESH_TOKEN,
                    "grant_type": "refresh_token",
                },
            )
            return self._tokens.set(body["access_token"], body.get("expires_in") or 3600)

        if s.GOOGLE_SERVICE_ACCOUNT_FILE:
            return await self._service_account_token()

        raise ConfigError(
            "Google Drive authentication is required: GOOGLE_ACCESS_TOKEN or OAuth2 credentials "
            "(GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN)"
        )

    async def _service_account_token(self) -> str:
        if self._service_credentials is None:
            logger.info("building_drive_service_credentials")
            self._service_credentials = service_account.Credentials.from_service_account_file(
                self.settings.GOOGLE_SERVICE_ACCOUNT_FILE,
                scopes=DRIVE_SCOPES,
            )
        credentials = self._service_credentials
        # google-auth refreshes synchronously.
        await asyncio.to_thread(credentials.refresh, GoogleAuthRequest())
        expires_in = None
        if credentials.expiry is not None:
            # google-auth keeps expiry as naive UTC.
            now = datetime.now(timezone.utc).replace(tzinfo=None)
            expires_in = (credentials.expiry - now).total_seconds()
        return self._tokens.set(credentials.token, expires_in)

    async def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._access_token()}"}

    # ── Shared file helpers ───────────────────────────────────────────────

    async def _get_file(self, file_id: str, fields: str) -> dict:
        return await self.http.get(
            f"/drive/v3/files/{file_id}",
            params={"fields": fields, "supportsAllDrives": "true"},
        )

    async def _list_files_raw(self, fields: str, q: str | None = None) -> list[dict]:
        params: dict[str, Any] = {"fields": f"files({fields})", "pageSize": PAGE_SIZE, **ALL_DRIVES}
        if q:
            params["q"] = q
        body = await self.http.get("/drive/v3/files", params=params)
        return (body.get("files") or [])[:PAGE_SIZE]

    async def _patch_file(self, file_id: str, body: dict, params: dict[str, Any] | None = None) -> dict:
        return await self.http.patch(
            f"/drive/v3/files/{file_id}",
            json=body,
            params={"supportsAllDrives": "true", **(params or {})},
        )

    async def _delete_file(self, file_id: str) -> None:
        await self.http.delete(f"/drive/v3/files/{file_id}", params={"supportsAllDrives": "true"})

    @staticmethod
    def _rename_body(new_attrs: Mapping[str, Any], name_key: str) -> dict:
        body: dict[str, Any] = {}
        if new_attrs.get(name_key):
            body["name"] = new_attrs[name_key]
        if new_attrs.get("description"):
            body["description"] = new_attrs["description"]
        return body

    # ── Documents ─────────────────────────────────────────────────────────

    async def _list_documents(self) -> list[Instance]:
        files = await self._list_files_raw(DOCUMENT_FIELDS, f'mimeType!="{mappers.FOLDER_MIME_TYPE}"')
        return self._instances("Document", files, mappers.to_document)

    @returns_result
    async def query_document(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        doc_id = path_id(query)
        if doc_id:
            return [self._instance("Document", mappers.to_document(await self._get_file(doc_id, DOCUMENT_FIELDS)))]
        return await self._list_documents()

    @returns_result
    async def update_document(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Document ID is required")
        result = await self._patch_file(attrs["id"], self._rename_body(new_attrs, "title"))
        return self._instance("Document", mappers.to_document(result))

    @returns_result
    async def delete_document(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Document ID is required")
        await self._delete_file(attrs["id"])

    # ── Folders ───────────────────────────────────────────────────────────

    async def _list_folders(self) -> list[Instance]:
        files = await self._list_files_raw(DOCUMENT_FIELDS, f'mimeType="{mappers.FOLDER_MIME_TYPE}"')
        return self._instances("Folder", files, mappers.to_folder)

    @returns_result
    async def create_folder(self, attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("title"):
            raise RequiredFieldError("Folder name is required")
        body: dict[str, Any] = {"name": attrs["title"], "mimeType": mappers.FOLDER_MIME_TYPE}
        if attrs.get("parent_id"):
            body["parents"] = [attrs["parent_id"]]
        result = await self.http.post(
            "/drive/v3/files",
            json=body,
            params={"supportsAllDrives": "true", "fields": DOCUMENT_FIELDS},
        )
        return self._instance("Folder", mappers.to_folder(result))

    @returns_result
    async def query_folder(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        folder_id = path_id(query)
        if folder_id:
            return [self._instance("Folder", mappers.to_folder(await self._get_file(folder_id, DOCUMENT_FIELDS)))]
        return await self._list_folders()

    @returns_result
    async def update_folder(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("Folder ID is required")
        result = await self._patch_file(attrs["id"], self._rename_body(new_attrs, "title"))
        return self._instance("Folder", mappers.to_folder(result))

    @returns_result
    async def delete_folder(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("Folder ID is required")
        await self._delete_file(attrs["id"])

    async def _folder_listing(self, folder_id: str, cursor: str | None = None) -> dict:
        params: dict[str, Any] = {
            "q": f"'{folder_id}' in parents and trashed=false",
            "fields": f"nextPageToken,files({FILE_FIELDS})",
            "pageSize": PAGE_SIZE,
            "orderBy": "name",
            **ALL_DRIVES,
        }
        if cursor:
            params["pageToken"] = cursor
        return await self.http.get("/drive/v3/files", params=params)

    @returns_result
    async def query_folder_content(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        query = query or {}
        listing = await self._folder_listing(query.get("id") or "root", query.get("cursor"))
        return [self._instance("FolderContent", mappers.to_folder_content(listing))]

    @returns_result
    async def get_folder_content(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        listing = await self._folder_listing(path_id(query) or "root")
        return [self._instance("FolderContent", mappers.to_folder_content(listing))]

    # ── Files ─────────────────────────────────────────────────────────────

    @returns_result
    async def query_file(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        file_id = path_id(query)
        if file_id:
            return [self._instance("File", mappers.to_file(await self._get_file(file_id, FILE_FIELDS)))]
        return self._instances("File", await self._list_files_raw(FILE_FIELDS), mappers.to_file)

    @returns_result
    async def update_file(self, attrs: Mapping[str, Any], new_attrs: Mapping[str, Any]) -> Instance:
        if not attrs.get("id"):
            raise RequiredFieldError("File ID is required")
        result = await self._patch_file(attrs["id"], self._rename_body(new_attrs, "name"), {"fields": FILE_FIELDS})
        return self._instance("File", mappers.to_file(result))

    @returns_result
    async def delete_file(self, attrs: Mapping[str, Any]) -> None:
        if not attrs.get("id"):
            raise RequiredFieldError("File ID is required")
        await self._delete_file(attrs["id"])

    async def _upload_media(self, content: bytes, mime_type: str) -> dict:
        if len(content) > MAX_SIMPLE_UPLOAD_BYTES:
            raise RequiredFieldError("File size exceeds the 5 MB limit for simple uploads")
        return await self.http.post(
            f"{self.settings.GOOGLE_DRIVE_BASE_URL}/upload/drive/v3/files",
            params={"uploadType": "media", "supportsAllDrives": "true"},
            content=content,
            headers={"Content-Type": mime_type},
            timeout=HttpClient.TIMEOUT_UPLOAD,
        )

    @returns_result
    async def upload_file(self, attrs: Mapping[str, Any]) -> Instance:
        """Upload inline content, then set its name, description and folder."""
        content, name = attrs.get("content"), attrs.get("name")
        if not content or not name:
            raise RequiredFieldError("Content and name are required")
        if str(attrs.get("is_base64")).lower() == "true":
            payload = base64.b64decode(content)
        else:
            payload = content.encode("utf-8") if isinstance(content, str) else bytes(content)

        uploaded = await self._upload_media(payload, attrs.get("mime_type") or "application/octet-stream")
        body: dict[str, Any] = {"name": name}
        if attrs.get("description"):
            body["description"] = attrs["description"]
        params: dict[str, Any] = {"fields": FILE_FIELDS}
        if attrs.get("folder_id"):
            params.update(addParents=attrs["folder_id"], removeParents="root")
        result = await self._patch_file(uploaded["id"], body, params)
        logger.info("drive_file_uploaded", file_id=uploaded["id"], name=name, size=len(payload))
        return self._instance("File", mappers.to_file(result))

    @returns_result
    async def upload_local_file(self, file_name: str, upload_name: str | None = None) -> Instance:
        """Upload ``FS_ROOT/file_name`` to My Drive."""
        if not file_name:
            raise RequiredFieldError("File name is required")
        local_path = self.fs_root / file_name
        uploaded = await self._upload_media(local_path.read_bytes(), "application/octet-stream")
        result = await self._patch_file(uploaded["id"], {"name": upload_name or local_path.name}, {"fields": FILE_FIELDS})
        return self._instance("File", mappers.to_file(result))

    async def _download(self, file_id: str) -> bytes:
        return await self.http.get(
            f"/drive/v3/files/{file_id}",
            params={"alt": "media", "supportsAllDrives": "true"},
            raw=True,
            timeout=HttpClient.TIMEOUT_DOWNLOAD,
        )

    @returns_result
    async def query_file_content(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        file_id = path_id(query)
        if not file_id:
            raise RequiredFieldError("File ID is required")
        meta = await self._get_file(file_id, CONTENT_FIELDS)
        content = await self._download(file_id)
        return [
            self._instance(
                "FileContent",
                {
                    "id": meta.get("id"),
                    "name": meta.get("name"),
                    "content": base64.b64encode(content).decode("ascii"),
                    "size": to_int(meta.get("size"), len(content)),
                    "modified_time": meta.get("modifiedTime"),
                },
            )
        ]

    @returns_result
    async def sync_remote_file(self, file_id: str, file_name: str | None = None) -> Instance:
        """Download a Drive file into FS_ROOT and return it with its local path."""
        if not file_id:
            raise RequiredFieldError("File ID is required")
        meta = await self._get_file(file_id, CONTENT_FIELDS)
        content = await self._download(file_id)
        local_path = self.fs_root / get_file_unique_name(file_name, meta.get("id", file_id), meta.get("name", ""))
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(content)
        logger.info("drive_file_synced", file_id=file_id, path=str(local_path))
        return self._instance(
            "File",
            {
                "id": meta.get("id"),
                "name": meta.get("name"),
                "mime_type": meta.get("mimeType"),
                "parents": None,
                "modified_time": meta.get("modifiedTime"),
                "created_time": None,
                "web_view_link": str(local_path),
                "kind": "local",
            },
        )

    # ── Shared drives ─────────────────────────────────────────────────────

    @returns_result
    async def query_drive(self, query: Mapping[str, Any] | None = None) -> list[Instance]:
        drive_id = path_id(query)
        if drive_id:
            drive = await self.http.get(f"/drive/v3/drives/{drive_id}", params={"fields": DRIVE_FIELDS})
            return [self._instance("Drive", mappers.to_drive(drive))]
        body = await self.http.get(
            "/drive/v3/drives",
            params={"pageSize": PAGE_SIZE, "fields": f"drives({DRIVE_FIELDS})"},
        )
        return self._instances("Drive", body.get("drives") or [], mappers.to_drive, limit=PAGE_SIZE)

    # ── Subscriptions ─────────────────────────────────────────────────────

    async def subscribe_documents(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "documents", self._list_documents, sink, self.settings.GOOGLE_DRIVE_POLL_INTERVAL_MINUTES
        )

    async def subscribe_folders(self, sink: SubscriptionSink) -> PollingTask:
        return await self._subscribe(
            "folders", self._list_folders, sink, self.settings.GOOGLE_DRIVE_POLL_INTERVAL_MINUTES
        )
