"""Pydantic schemas for job submission, status payloads and poll sessions."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Literal, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from CHARGEBACK.server.common.exceptions import StatusReadError, summarize_error
from CHARGEBACK.server.entities.jobs import JobStatusEntry, JobStatusSnapshot

JobStatusValue = Literal["idle", "running", "processing", "completed", "failed"]
JOB_STATUS_VALUES = frozenset(get_args(JobStatusValue))


###############################################################################
class JobStatusEntryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    last_update: str | None = Field(
        default=None, validation_alias=AliasChoices("last_update", "last_updated")
    )
    error: str | None = None


###############################################################################
class NestedStatusPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: JobStatusValue | None = None
    details: dict[str, JobStatusEntryPayload] = Field(default_factory=dict)
    last_updated: str | None = None


FLAT_STATUS_ADAPTER = TypeAdapter(dict[str, JobStatusEntryPayload])


# -----------------------------------------------------------------------------
def to_entries(
    payloads: dict[str, JobStatusEntryPayload],
    watched_keys: Iterable[str] | None,
) -> dict[str, JobStatusEntry]:
    """Keep every known status; an unknown one fails only on a watched key."""
    watched = None if watched_keys is None else set(watched_keys)
    entries: dict[str, JobStatusEntry] = {}
    for key, payload in payloads.items():
        if payload.status not in JOB_STATUS_VALUES:
            if watched is None or key in watched:
                raise StatusReadError(f"Unknown status '{payload.status}' for {key}")
            continue
        entries[key] = JobStatusEntry(
            status=payload.status, last_update=payload.last_update, error=payload.error
        )
    return entries


# -----------------------------------------------------------------------------
def parse_status_payload(
    payload: Any, watched_keys: Iterable[str] | None = None
) -> JobStatusSnapshot:
    """Normalize both status shapes served by the backend.

    Older backends return a flat map `{key: {status, last_update}}`; newer ones
    nest it as `{status, details: {key: {...}}, last_updated}`. The report
    generation endpoint only carries the top-level `status`. When
    `watched_keys` is given, unknown statuses on other keys are dropped.
    """
    if not isinstance(payload, dict):
        raise StatusReadError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    try:
        if "details" in payload or isinstance(payload.get("status"), str):
            nested = NestedStatusPayload.model_validate(payload)
            return JobStatusSnapshot(
                entries=to_entries(nested.details, watched_keys),
                status=nested.status,
                last_updated=nested.last_updated,
            )
        flat = FLAT_STATUS_ADAPTER.validate_python(payload)
    except PydanticValidationError as exc:
        raise StatusReadError(
            f"Invalid status payload: {summarize_error(exc)}"
        ) from exc

    return JobStatusSnapshot(entries=to_entries(flat, watched_keys))


###############################################################################
class RefreshRequest(BaseModel):
    job_keys: list[str] = Field(default_factory=list)


###############################################################################
class ReportGenerationRequest(BaseModel):
    name: str = ""
    from_date: datetime | None = None
    to_date: datetime | None = None
    dg_ids: list[int] | None = None


###############################################################################
class PollSessionResponse(BaseModel):
    session_id: str
    family: str
    state: str
    job_keys: list[str]
    statuses: dict[str, str | None] = Field(default_factory=dict)
    global_status: str | None = None
    reads: int = 0
    outcome: Literal["success", "failure", "error"] | None = None
    error: str | None = None
    last_updated: str | None = None
    poll_interval: float | None = None


###############################################################################
class NotificationResponse(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"]
    created_at: str


###############################################################################
class NotificationListResponse(BaseModel):
    view_id: str
    notifications: list[NotificationResponse]


###############################################################################
class ViewResponse(BaseModel):
    view_id: str
    refresh: PollSessionResponse | None = None
    report: PollSessionResponse | None = None
