from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from CHARGEBACK.server.common.constants import (
    BACKEND_REFRESH_PREFIX,
    STATUS_FAILED,
    TERMINAL_STATUSES,
)


###############################################################################
@dataclass(frozen=True)
class JobEndpoint:
    key: str
    path: str
    status_key: str
    label: str
    priority: int
    method: str = "POST"


# -----------------------------------------------------------------------------
def refresh_endpoint(key: str, label: str, priority: int) -> JobEndpoint:
    return JobEndpoint(
        key=key,
        path=f"{BACKEND_REFRESH_PREFIX}/{key}",
        status_key=key.replace("-", "_"),
        label=label,
        priority=priority,
    )


# Dispatch priority follows the backend's dependency chain: groups first,
# then the entities linked to them.
JOB_ENDPOINTS: MappingProxyType[str, JobEndpoint] = MappingProxyType(
    {
        endpoint.key: endpoint
        for endpoint in (
            refresh_endpoint("dgs", "DGs", 0),
            refresh_endpoint("applications", "Applications", 1),
            refresh_endpoint("hosts", "Hosts", 2),
            refresh_endpoint("synthetics", "Synthetics", 3),
            refresh_endpoint(
                "platform-extensions", "Platform Extensions (Former DDUs)", 4
            ),
            refresh_endpoint("topology-enrichment", "Topology Enrichment", 5),
        )
    }
)


###############################################################################
@dataclass(frozen=True)
class JobStatusEntry:
    status: str
    last_update: str | None = None
    error: str | None = None

    # -------------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    # -------------------------------------------------------------------------
    @property
    def is_failed(self) -> bool:
        return self.status == STATUS_FAILED


###############################################################################
@dataclass(frozen=True)
class JobStatusSnapshot:
    entries: dict[str, JobStatusEntry] = field(default_factory=dict)
    status: str | None = None
    last_updated: str | None = None

    # -------------------------------------------------------------------------
    def status_of(self, status_key: str) -> str | None:
        entry = self.entries.get(status_key)
        return entry.status if entry is not None else None

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "last_updated": self.last_updated,
            "details": {
                key: {
                    "status": entry.status,
                    "last_update": entry.last_update,
                    "error": entry.error,
                }
                for key, entry in self.entries.items()
            },
        }


###############################################################################
@dataclass(frozen=True)
class ReportJob:
    name: str
    from_date: str
    to_date: str
    dg_ids: tuple[int, ...]
    report_format: str

    # -------------------------------------------------------------------------
    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "from_date": self.from_date,
            "to_date": self.to_date,
            "dg_ids": list(self.dg_ids),
            "report_format": self.report_format,
        }
