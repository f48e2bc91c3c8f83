from __future__ import annotations

from dataclasses import dataclass


###############################################################################
@dataclass(frozen=True)
class FastAPISettings:
    title: str
    version: str
    description: str


###############################################################################
@dataclass(frozen=True)
class BackendSettings:
    base_url: str
    timeout: float


###############################################################################
@dataclass(frozen=True)
class JobSettings:
    polling_interval: float
    dispatch_mode: str
    refresh_stop_policy: str
    view_ttl: float = 1800.0


###############################################################################
@dataclass(frozen=True)
class InventorySettings:
    default_page_size: int
    max_page_size: int


###############################################################################
@dataclass(frozen=True)
class ServerSettings:
    fastapi: FastAPISettings
    backend: BackendSettings
    jobs: JobSettings
    inventory: InventorySettings
