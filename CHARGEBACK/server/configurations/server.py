from __future__ import annotations

from typing import Any

from CHARGEBACK.server.configurations.base import (
    ensure_mapping,
    load_configurations,
)
from CHARGEBACK.server.common.constants import (
    CONFIGURATION_FILE,
    DISPATCH_MODE_CONCURRENT,
    DISPATCH_MODES,
    FASTAPI_DESCRIPTION,
    FASTAPI_TITLE,
    FASTAPI_VERSION,
    STOP_POLICY_GLOBAL,
    STOP_POLICY_PER_KEY,
)
from CHARGEBACK.server.common.utils.types import (
    coerce_float,
    coerce_int,
    coerce_str,
)
from CHARGEBACK.server.entities.settings import (
    BackendSettings,
    FastAPISettings,
    InventorySettings,
    JobSettings,
    ServerSettings,
)
from CHARGEBACK.server.common.utils.variables import env_variables

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_API_TIMEOUT = 10.0
DEFAULT_POLLING_INTERVAL = 2.0
DEFAULT_VIEW_TTL = 1800.0
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGE_SIZE = 1000


# [BUILDER FUNCTIONS]
###############################################################################
def build_fastapi_settings(payload: dict[str, Any] | Any) -> FastAPISettings:
    return FastAPISettings(
        title=coerce_str(payload.get("title"), FASTAPI_TITLE),
        version=coerce_str(payload.get("version"), FASTAPI_VERSION),
        description=coerce_str(payload.get("description"), FASTAPI_DESCRIPTION),
    )


# -------------------------------------------------------------------------
def build_backend_settings(payload: dict[str, Any] | Any) -> BackendSettings:
    base_url = coerce_str(
        env_variables.get("CHARGEBACK_API_URL"),
        coerce_str(payload.get("base_url"), DEFAULT_API_URL),
    )
    timeout = coerce_float(
        env_variables.get("CHARGEBACK_API_TIMEOUT"),
        coerce_float(payload.get("timeout"), DEFAULT_API_TIMEOUT, minimum=0.1),
        minimum=0.1,
    )
    return BackendSettings(base_url=base_url.rstrip("/"), timeout=timeout)


# -------------------------------------------------------------------------
def build_job_settings(payload: dict[str, Any] | Any) -> JobSettings:
    dispatch_mode = coerce_str(
        payload.get("dispatch_mode"), DISPATCH_MODE_CONCURRENT
    ).lower()
    if dispatch_mode not in DISPATCH_MODES:
        dispatch_mode = DISPATCH_MODE_CONCURRENT

    stop_policy = coerce_str(
        payload.get("refresh_stop_policy"), STOP_POLICY_PER_KEY
    ).lower()
    if stop_policy not in (STOP_POLICY_PER_KEY, STOP_POLICY_GLOBAL):
        stop_policy = STOP_POLICY_PER_KEY

    return JobSettings(
        polling_interval=coerce_float(
            payload.get("polling_interval"), DEFAULT_POLLING_INTERVAL, minimum=0.0
        ),
        dispatch_mode=dispatch_mode,
        refresh_stop_policy=stop_policy,
        view_ttl=coerce_float(payload.get("view_ttl"), DEFAULT_VIEW_TTL, minimum=0.0),
    )


# -------------------------------------------------------------------------
def build_inventory_settings(payload: dict[str, Any] | Any) -> InventorySettings:
    max_page_size = coerce_int(
        payload.get("max_page_size"), DEFAULT_MAX_PAGE_SIZE, minimum=1
    )
    return InventorySettings(
        default_page_size=coerce_int(
            payload.get("default_page_size"),
            DEFAULT_PAGE_SIZE,
            minimum=1,
            maximum=max_page_size,
        ),
        max_page_size=max_page_size,
    )


# -------------------------------------------------------------------------
def build_server_settings(payload: dict[str, Any] | Any) -> ServerSettings:
    fastapi_payload = ensure_mapping(payload.get("fastapi"))
    backend_payload = ensure_mapping(payload.get("backend"))
    jobs_payload = ensure_mapping(payload.get("jobs"))
    inventory_payload = ensure_mapping(payload.get("inventory"))

    return ServerSettings(
        fastapi=build_fastapi_settings(fastapi_payload),
        backend=build_backend_settings(backend_payload),
        jobs=build_job_settings(jobs_payload),
        inventory=build_inventory_settings(inventory_payload),
    )


# [SERVER CONFIGURATION LOADER]
###############################################################################
# -------------------------------------------------------------------------
def get_server_settings(config_path: str | None = None) -> ServerSettings:
    path = config_path or CONFIGURATION_FILE
    payload = load_configurations(path)

    return build_server_settings(payload)


server_settings = get_server_settings()
