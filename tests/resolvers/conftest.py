"""Shared fixtures for connector tests.

Provides:
- FakeVendor: an httpx.MockTransport route table that records every request
- RecordingSink: collects ``on_subscription`` calls from polling tasks
- fs_root: a temporary FS_ROOT directory

No test talks to a real vendor API.
"""

from __future__ import annotations

import json
from collections import defaultdict, deque
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from src.resolvers.core.instance import Instance


class FakeVendor:
    """Answers requests from ``(METHOD, path)`` routes.

    A route may be given several responses; they are served in order and
    the last one repeats. Unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], deque[httpx.Response]] = defaultdict(deque)
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        body: Any = None,
        status: int = 200,
        *,
        text: str | None = None,
        content: bytes | None = None,
    ) -> FakeVendor:
        if content is not None:
            response = httpx.Response(status, content=content)
        elif text is not None:
            response = httpx.Response(status, text=text)
        elif body is None:
            response = httpx.Response(status)
        else:
            response = httpx.Response(status, json=body)
        self._routes[(method.upper(), path)].append(response)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})
        return queue.popleft() if len(queue) > 1 else queue[0]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # ── Inspection ────────────────────────────────────────────────────────

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method.upper()) and (path is None or r.url.path == path)
        ]

    def last(self, method: str | None = None, path: str | None = None) -> httpx.Request:
        matching = self.calls(method, path)
        assert matching, f"no {method or ''} request to {path or 'any path'}"
        return matching[-1]

    @staticmethod
    def json(request: httpx.Request) -> Any:
        return json.loads(request.content)

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decode a form-encoded body into ``{key: value}`` (last value wins)."""
        return {k: v[-1] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}


class RecordingSink:
    def __init__(self) -> None:
        self.received: list[tuple[Instance, bool]] = []

    async def on_subscription(self, instance: Instance, is_upsert: bool) -> None:
        self.received.append((instance, is_upsert))

    @property
    def instances(self) -> list[Instance]:
        return [inst for inst, _ in self.received]


@pytest.fixture
def vendor() -> FakeVendor:
    return FakeVendor()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fs_root(tmp_path):
    root = tmp_path / "fs"
    root.mkdir()
    return root
