"""Fixtures for E2E tests against a running dashboard service."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from playwright.sync_api import APIRequestContext, Error, sync_playwright

from CHARGEBACK.server.common.utils.variables import EnvironmentVariables


# -------------------------------------------------------------------------
def resolve_service_url() -> str:
    env_values = EnvironmentVariables()
    host = env_values.get("FASTAPI_HOST", "127.0.0.1")
    port = env_values.get("FASTAPI_PORT", "8050")
    service_url = os.getenv("CHARGEBACK_TEST_SERVICE_URL", f"http://{host}:{port}")
    return service_url.rstrip("/")


SERVICE_URL = resolve_service_url()


###############################################################################
@pytest.fixture(scope="session")
def api_base_url() -> str:
    """Return the dashboard service base URL."""
    return SERVICE_URL


# -----------------------------------------------------------------------------
@pytest.fixture(scope="session")
def api_context(api_base_url: str) -> Iterator[APIRequestContext]:
    """Create a Playwright API request context, skipping when the service is down."""
    with sync_playwright() as playwright:
        context = playwright.request.new_context(base_url=api_base_url)
        try:
            context.get("/docs", timeout=2000)
        except Error:
            context.dispose()
            pytest.skip(f"Dashboard service not reachable at {api_base_url}")
        yield context
        context.dispose()
