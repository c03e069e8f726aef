"""Tests for the Google Drive connector."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from src.resolvers.core.errors import ErrorKind
from src.resolvers.googledrive.config import GoogleDriveSettings
from src.resolvers.googledrive.mappers import FOLDER_MIME_TYPE, to_file, to_folder_content
from src.resolvers.googledrive.resolver import DRIVE_SCOPES, GoogleDriveResolver

FILES = "/drive/v3/files"


def _resolver(vendor, fs_root=None, **overrides):
    return GoogleDriveResolver(GoogleDriveSettings(_env_file=None, **overrides), transport=vendor.transport, fs_root=fs_root)


@pytest.fixture
def resolver(vendor, fs_root):
    return _resolver(vendor, fs_root, GOOGLE_ACCESS_TOKEN="ya29.test")


class TestAuth:
    @pytest.mark.asyncio
    async def test_direct_token_skips_exchange(self, vendor):
        vendor.add("GET", FILES, {"files": []})
        resolver = _resolver(
            vendor,
            GOOGLE_ACCESS_TOKEN="ya29.direct",
            GOOGLE_CLIENT_ID="cid",
            GOOGLE_CLIENT_SECRET="sec",
            GOOGLE_REFRESH_TOKEN="1//r",
        )

        result = await resolver.query_file()

        assert result.ok
        assert vendor.calls("POST", "/token") == []
        assert vendor.last("GET").headers["Authorization"] == "Bearer ya29.direct"

    @pytest.mark.asyncio
    async def test_service_account_credentials_built_once(self, vendor):
        vendor.add("GET", FILES, {"files": []})
        credentials = MagicMock(token="ya29.sa", expiry=datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1))
        resolver = _resolver(vendor, GOOGLE_SERVICE_ACCOUNT_FILE="/secrets/sa.json")

        with patch(
            "src.resolvers.googledrive.resolver.service_account.Credentials.from_service_account_file",
            return_value=credentials,
        ) as from_file:
            await resolver.query_file()
            await resolver.query_file()

        from_file.assert_called_once_with("/secrets/sa.json", scopes=DRIVE_SCOPES)
        credentials.refresh.assert_called_once()
        assert vendor.calls("POST", "/token") == []
        assert vendor.last("GET").headers["Authorization"] == "Bearer ya29.sa"

    @pytest.mark.asyncio
    async def test_refresh_grant_then_cached(self, vendor):
        vendor.add("POST", "/token", {"access_token": "ya29.fresh", "expires_in": 3599})
        vendor.add("GET", FILES, {"files": []})
        resolver = _resolver(
            vendor, GOOGLE_CLIENT_ID="cid", GOOGLE_CLIENT_SECRET="sec", GOOGLE_REFRESH_TOKEN="1//r"
        )

        await resolver.query_file()
        await resolver.query_file()

        grants = vendor.calls("POST", "/token")
        assert len(grants) == 1
        assert vendor.form(grants[0])["grant_type"] == "refresh_token"
        assert vendor.last("GET").headers["Authorization"] == "Bearer ya29.fresh"

    @pytest.mark.asyncio
    async def test_no_credentials(self, vendor):
        result = await _resolver(vendor).query_document()
        assert result.kind is ErrorKind.config
        assert vendor.requests == []


class TestDocumentsAndFolders:
    @pytest.mark.asyncio
    async def test_documents_exclude_folders_across_drives(self, resolver, vendor):
        vendor.add("GET", FILES, {"files": [{"id": "d1", "name": "Plan", "webViewLink": "https://docs/d1"}]})
        result = await resolver.query_document()

        assert result.value[0].attributes["title"] == "Plan"
        params = vendor.last().url.params
        assert params["q"] == f'mimeType!="{FOLDER_MIME_TYPE}"'
        assert params["supportsAllDrives"] == "true"
        assert params["corpora"] == "allDrives"

    @pytest.mark.asyncio
    async def test_create_folder_under_parent(self, resolver, vendor):
        vendor.add("POST", FILES, {"id": "f1", "name": "Specs", "mimeType": FOLDER_MIME_TYPE})
        result = await resolver.create_folder({"title": "Specs", "parent_id": "p1"})

        assert vendor.json(vendor.last("POST")) == {"name": "Specs", "mimeType": FOLDER_MIME_TYPE, "parents": ["p1"]}
        assert result.value["id"] == "f1"

    @pytest.mark.asyncio
    async def test_rename_document(self, resolver, vendor):
        vendor.add("PATCH", f"{FILES}/d1", {"id": "d1", "name": "Renamed"})
        result = await resolver.update_document({"id": "d1"}, {"title": "Renamed"})
        assert vendor.json(vendor.last("PATCH")) == {"name": "Renamed"}
        assert result.value["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_delete_folder_requires_id(self, resolver, vendor):
        result = await resolver.delete_folder({})
        assert result.kind is ErrorKind.validation
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_folder_content_defaults_to_root(self, resolver, vendor):
        vendor.add("GET", FILES, {"files": [], "nextPageToken": "next"})
        result = await resolver.query_folder_content({"cursor": "c1"})

        params = vendor.last().url.params
        assert params["q"] == "'root' in parents and trashed=false"
        assert params["pageToken"] == "c1"
        assert result.value[0]["next_cursor"] == "next"


class TestFiles:
    @pytest.mark.asyncio
    async def test_upload_inline_base64_then_moves_into_folder(self, resolver, vendor):
        vendor.add("POST", "/upload/drive/v3/files", {"id": "u1"})
        vendor.add("PATCH", f"{FILES}/u1", {"id": "u1", "name": "notes.txt", "parents": ["folder9"]})

        result = await resolver.upload_file(
            {
                "name": "notes.txt",
                "content": base64.b64encode(b"hello").decode(),
                "is_base64": "true",
                "mime_type": "text/plain",
                "folder_id": "folder9",
            }
        )

        upload = vendor.last("POST")
        assert upload.content == b"hello"
        assert upload.headers["Content-Type"] == "text/plain"
        assert upload.url.params["uploadType"] == "media"
        patch = vendor.last("PATCH")
        assert patch.url.params["addParents"] == "folder9"
        assert patch.url.params["removeParents"] == "root"
        assert result.value["parents"] == "folder9"

    @pytest.mark.asyncio
    async def test_upload_requires_content_and_name(self, resolver):
        result = await resolver.upload_file({"name": "x"})
        assert result.kind is ErrorKind.validation

    @pytest.mark.asyncio
    async def test_oversized_upload_is_rejected(self, resolver, vendor):
        result = await resolver.upload_file({"name": "big.bin", "content": "x" * (5 * 1024 * 1024 + 1)})
        assert result.kind is ErrorKind.validation
        assert vendor.requests == []

    @pytest.mark.asyncio
    async def test_file_content_is_base64(self, resolver, vendor):
        vendor.add("GET", f"{FILES}/f1", {"id": "f1", "name": "a.txt", "size": "5"})
        # metadata and media share a path; the second response is the body
        vendor.add("GET", f"{FILES}/f1", content=b"hello")
        result = await resolver.query_file_content({"__path__": "googledrive/FileContent/f1"})

        content = result.value[0].attributes
        assert content["content"] == "aGVsbG8="
        assert content["size"] == 5

    @pytest.mark.asyncio
    async def test_sync_remote_file(self, resolver, vendor, fs_root):
        vendor.add("GET", f"{FILES}/f1", {"id": "f1", "name": "a.txt"})
        vendor.add("GET", f"{FILES}/f1", content=b"data")
        result = await resolver.sync_remote_file("f1", "copy.txt")

        assert (fs_root / "copy.txt").read_bytes() == b"data"
        assert result.value["kind"] == "local"

    @pytest.mark.asyncio
    async def test_upload_local_file(self, resolver, vendor, fs_root):
        (fs_root / "local.csv").write_bytes(b"a,b")
        vendor.add("POST", "/upload/drive/v3/files", {"id": "u2"})
        vendor.add("PATCH", f"{FILES}/u2", {"id": "u2", "name": "local.csv"})
        result = await resolver.upload_local_file("local.csv")

        assert vendor.json(vendor.last("PATCH")) == {"name": "local.csv"}
        assert result.value["id"] == "u2"


class TestMappers:
    def test_file_parents_joined(self):
        assert to_file({"id": "1", "parents": ["a", "b"]})["parents"] == "a,b"
        assert to_file({"id": "1"})["parents"] is None

    def test_folder_content_partitions(self):
        content = to_folder_content({"files": [{"id": "1", "mimeType": FOLDER_MIME_TYPE}, {"id": "2"}]})
        assert [f["id"] for f in content["folders"]] == ["1"]
        assert [f["id"] for f in content["files"]] == ["2"]
        assert content["next_cursor"] is None


@pytest.mark.asyncio
async def test_shared_drives_query(resolver, vendor):
    vendor.add("GET", "/drive/v3/drives", {"drives": [{"id": "0A", "name": "Team"}]})
    result = await resolver.query_drive()
    assert result.value[0].attributes == {"id": "0A", "name": "Team", "kind": None, "created_time": None, "hidden": False}


@pytest.mark.asyncio
async def test_folders_subscription(resolver, vendor, sink):
    vendor.add("GET", FILES, {"files": [{"id": "f1", "name": "Shared"}]})
    task = await resolver.subscribe_folders(sink)
    task.stop()
    assert sink.instances[0].entity_type == "Folder"
