from __future__ import annotations

from CHARGEBACK.server.configurations.base import (
    ensure_mapping,
    load_configurations,
)
from CHARGEBACK.server.configurations.server import (
    BackendSettings,
    InventorySettings,
    JobSettings,
    ServerSettings,
    server_settings,
    get_server_settings,
)

__all__ = [
    "BackendSettings",
    "InventorySettings",
    "JobSettings",
    "ServerSettings",
    "server_settings",
    "get_server_settings",
    "ensure_mapping",
    "load_configurations",
]
