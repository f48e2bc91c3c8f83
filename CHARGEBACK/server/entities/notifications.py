from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

NotificationVariant = Literal["default", "destructive"]


# -----------------------------------------------------------------------------
def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


###############################################################################
@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: NotificationVariant = "default"
    created_at: str = field(default_factory=utc_now_iso)

    # -------------------------------------------------------------------------
    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


###############################################################################
@dataclass(frozen=True)
class SessionMessages:
    success_title: str
    success_description: str
    failure_title: str
    failure_description: str
    read_error_title: str = "Status Check Failed"

    # -------------------------------------------------------------------------
    def outcome(self, failed: bool) -> Notification:
        if failed:
            return Notification(
                title=self.failure_title,
                description=self.failure_description,
                variant="destructive",
            )
        return Notification(
            title=self.success_title,
            description=self.success_description,
        )

    # -------------------------------------------------------------------------
    def read_error(self, detail: str) -> Notification:
        return Notification(
            title=self.read_error_title,
            description=f"Unable to read job status: {detail}",
            variant="destructive",
        )


REFRESH_MESSAGES = SessionMessages(
    success_title="Refresh Completed",
    success_description="All selected items have been successfully updated.",
    failure_title="Refresh Failed",
    failure_description="Some items failed to refresh. Please try again.",
)

REPORT_MESSAGES = SessionMessages(
    success_title="Report Generated",
    success_description="The report is ready in the reports list.",
    failure_title="Report Failed",
    failure_description="Report generation failed. Please try again.",
)
