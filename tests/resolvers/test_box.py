"""Tests for the Box connector: auth order, files, folders, users and file sync."""

from __future__ import annotations

import pytest

from src.resolvers.box.config import BoxSettings
from src.resolvers.box.mappers import to_folder_content, to_user
from src.resolvers.box.resolver import BoxResolver, get_file_unique_name
from src.resolvers.core.errors import ErrorKind

TOKEN_PATH = "/oauth2/token"


def _resolver(vendor, fs_root=None, **overrides):
    settings = BoxSettings(_env_file=None, **overrides)
    return BoxResolver(settings, transport=vendor.transport, fs_root=fs_root)


# ── Auth ──────────────────────────────────────────────────────────────────


class TestAuth:
    @pytest.mark.asyncio
    async def test_direct_token_skips_exchange(self, vendor):
        vendor.add("GET", "/2.0/users", {"entries": []})
        resolver = _resolver(vendor, BOX_ACCESS_TOKEN="direct", BOX_CLIENT_ID="id", BOX_CLIENT_SECRET="s")

        await resolver.query_user()

        assert vendor.calls("POST", TOKEN_PATH) == []
        assert vendor.last("GET").headers["Authorization"] == "Bearer direct"

    @pytest.mark.asyncio
    async def test_auth_code_exchanged_once_then_cached(self, vendor):
        vendor.add("POST", TOKEN_PATH, {"access_token": "t1", "expires_in": 3600, "refresh_token": "r1"})
        vendor.add("GET", "/2.0/users", {"entries": []})
        resolver = _resolver(vendor, BOX_CLIENT_ID="id", BOX_CLIENT_SECRET="s", BOX_AUTH_CODE="code")

        await resolver.query_user()
        await resolver.query_user()

        token_calls = vendor.calls("POST", TOKEN_PATH)
        assert len(token_calls) == 1
        assert vendor.form(token_calls[0])["grant_type"] == "authorization_code"
        assert vendor.last("GET").headers["Authorization"] == "Bearer t1"

    @pytest.mark.asyncio
    async def test_refresh_token_used_after_code_spent(self, vendor):
        vendor.add("POST", TOKEN_PATH, {"access_token": "t1", "expires_in": 1, "refresh_token": "r2"})
        vendor.add("GET", "/2.0/users", {"entries": []})
        resolver = _resolver(vendor, BOX_CLIENT_ID="id", BOX_CLIENT_SECRET="s", BOX_AUTH_CODE="code")

        await resolver.query_user()
        # expires_in=1 is inside the expiry margin, so the next call exchanges again
        await resolver.query_user()

        second = vendor.form(vendor.calls("POST", TOKEN_PATH)[1])
        assert second["grant_type"] == "refresh_token"
        assert second["refresh_token"] == "r2"

    @pytest.mark.asyncio
    async def test_missing_credentials_is_config_failure(self, vendor):
        result = await _resolver(vendor).query_file()
        assert result.kind is ErrorKind.config
        assert vendor.requests == []


# ── Files and folders ─────────────────────────────────────────────────────


class TestFilesAndFolders:
    @pytest.mark.asyncio
    async def test_list_files_filters_folder_entries(self, vendor):
        vendor.add(
            "GET",
            "/2.0/folders/0/items",
            {
                "entries": [
                    {"type": "file", "id": "f1", "name": "a.txt", "shared_link": {"download_url": "https://dl/a"}},
                    {"type": "folder", "id": "d1", "name": "docs"},
                ]
            },
        )
        result = await _resolver(vendor, BOX_ACCESS_TOKEN="t").query_file()

        assert [f.attributes for f in result.value] == [
            {"id": "f1", "name": "a.txt", "download_url": "https://dl/a", "modified_at": None}
        ]
        assert vendor.last().url.params["limit"] == "100"

    @pytest.mark.asyncio
    async def test_create_folder_defaults_to_root_parent(self, vendor):
        vendor.add("POST", "/2.0/folders", {"id": "d2", "name": "new"})
        result = await _resolver(vendor, BOX_ACCESS_TOKEN="t").create_folder({"name": "new"})

        assert vendor.json(vendor.last("POST")) == {"name": "new", "parent": {"id": "0"}}
        assert result.value["id"] == "d2"

    @pytest.mark.asyncio
    async def test_delete_folder_sends_recursive_flag(self, vendor):
        vendor.add("DELETE", "/2.0/folders/d1", status=204)
        await _resolver(vendor, BOX_ACCESS_TOKEN="t").delete_folder({"id": "d1", "recursive": True})
        assert vendor.last("DELETE").url.params["recursive"] == "true"

    def test_folder_content_splits_entries(self):
        content = to_folder_content(
            {"entries": [{"type": "file", "id": "1"}, {"type": "folder", "id": "2"}], "next_marker": ""}
        )
        assert [f["id"] for f in content["files"]] == ["1"]
        assert [f["id"] for f in content["folders"]] == ["2"]
        assert content["next_marker"] is None


class TestFileSync:
    @pytest.mark.asyncio
    async def test_upload_reads_from_fs_root(self, vendor, fs_root):
        (fs_root / "report.pdf").write_bytes(b"%PDF")
        vendor.add("POST", "/api/2.0/files/content", {"entries": [{"id": "f9", "name": "report.pdf"}]})
        result = await _resolver(vendor, fs_root, BOX_ACCESS_TOKEN="t").upload_file("report.pdf")

        assert result.value["id"] == "f9"
        request = vendor.last("POST", "/api/2.0/files/content")
        assert b"%PDF" in request.content
        assert b'"parent": {"id": "0"}' in request.content

    @pytest.mark.asyncio
    async def test_sync_remote_file_writes_locally(self, vendor, fs_root):
        vendor.add("GET", "/2.0/files/f1", {"id": "f1", "name": "a.txt"})
        vendor.add("GET", "/2.0/files/f1/content", content=b"hello")
        result = await _resolver(vendor, fs_root, BOX_ACCESS_TOKEN="t").sync_remote_file("f1")

        local = fs_root / get_file_unique_name(None, "f1", "a.txt")
        assert local.read_bytes() == b"hello"
        assert result.value["download_url"] == str(local)


class TestUsers:
    @pytest.mark.asyncio
    async def test_create_user_requires_names_and_email(self, vendor):
        result = await _resolver(vendor, BOX_ACCESS_TOKEN="t").create_user({"first_name": "Ada"})
        assert result.kind is ErrorKind.validation
        assert vendor.requests == []

    def test_user_name_split(self):
        assert to_user({"id": "1", "name": "Ada Lovelace", "login": "ada@example.com"}) == {
            "id": "1",
            "email": "ada@example.com",
            "first_name": "Ada",
            "last_name": "Lovelace",
        }

    @pytest.mark.asyncio
    async def test_delete_user_action_returns_id(self, vendor):
        vendor.add("DELETE", "/2.0/users/u1", status=204)
        result = await _resolver(vendor, BOX_ACCESS_TOKEN="t").delete_user_action({"id": "u1"})
        assert result.id == "u1"
        assert vendor.last("DELETE").url.params["force"] == "false"


@pytest.mark.parametrize("name,expected", [("keep.txt", "keep.txt"), (None, "f1a.txt")])
def test_unique_name(name, expected):
    assert get_file_unique_name(name, "f1", "a.txt") == expected
