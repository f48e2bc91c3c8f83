"""Pytest configuration and shared fixtures for CHARGEBACK tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from CHARGEBACK.server.entities.settings import InventorySettings, JobSettings


###############################################################################
class FakeBackend:
    """In-memory chargeback backend served through `httpx.MockTransport`.

    Status endpoints replay the configured payload sequence and keep returning
    the last payload once the sequence is exhausted.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.refresh_statuses: list[Any] = []
        self.generation_statuses: list[Any] = []
        self.failing_paths: set[str] = set()
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    # -------------------------------------------------------------------------
    def route(
        self,
        method: str,
        path: str,
        payload: Any = None,
        status_code: int = 200,
        content: bytes | None = None,
        content_type: str = "application/octet-stream",
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(
                    status_code, content=content, headers={"content-type": content_type}
                )
            return httpx.Response(status_code, json=payload)

        self.routes[(method, path)] = respond

    # -------------------------------------------------------------------------
    def next_status(self, statuses: list[Any]) -> httpx.Response:
        if not statuses:
            return httpx.Response(200, json={})
        payload = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        if isinstance(payload, httpx.Response):
            return payload
        return httpx.Response(200, json=payload)

    # -------------------------------------------------------------------------
    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        if path in self.failing_paths:
            return httpx.Response(500, json={"detail": "boom"})
        if (method, path) in self.routes:
            return self.routes[(method, path)](request)
        if method == "GET" and path == "/refresh/status":
            return self.next_status(self.refresh_statuses)
        if method == "GET" and path == "/status":
            return self.next_status(self.generation_statuses)
        if method == "POST" and path.startswith("/refresh/"):
            return httpx.Response(200, json={"status": "started"})
        if method == "POST" and path == "/generate":
            return httpx.Response(200, json={"status": "processing"})
        return httpx.Response(404, json={"detail": "not found"})

    # -------------------------------------------------------------------------
    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # -------------------------------------------------------------------------
    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and (path is None or request.url.path == path)
        ]

    # -------------------------------------------------------------------------
    def posted_paths(self) -> list[str]:
        return [request.url.path for request in self.calls("POST")]

    # -------------------------------------------------------------------------
    def last_json(self, method: str, path: str) -> Any:
        return json.loads(self.calls(method, path)[-1].content)


###############################################################################
@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


# -----------------------------------------------------------------------------
@pytest.fixture
def job_settings() -> JobSettings:
    return JobSettings(
        polling_interval=0.0,
        dispatch_mode="concurrent",
        refresh_stop_policy="per_key",
    )


# -----------------------------------------------------------------------------
@pytest.fixture
def inventory_settings() -> InventorySettings:
    return InventorySettings(default_page_size=100, max_page_size=500)
