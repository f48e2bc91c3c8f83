"""Submission of backend jobs and status polling until a terminal state."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from CHARGEBACK.server.common.constants import (
    ACTIVE_STATUSES,
    DISPATCH_MODE_SEQUENTIAL,
    JOB_FAMILY_REFRESH,
    JOB_FAMILY_REPORT,
    REPORT_FORMAT_JSON,
    REPORT_JOB_KEY,
    STATUS_FAILED,
    STATUS_IDLE,
    STOP_POLICY_GLOBAL,
    STOP_POLICY_PER_KEY,
    TERMINAL_STATUSES,
)
from CHARGEBACK.server.common.exceptions import (
    BackendError,
    JobFailure,
    SessionConflictError,
    StatusReadError,
    SubmissionError,
    ValidationError,
    ViewNotFoundError,
    summarize_error,
)
from CHARGEBACK.server.common.utils.logger import logger, session_logger
from CHARGEBACK.server.entities.jobs import (
    JOB_ENDPOINTS,
    JobEndpoint,
    JobStatusSnapshot,
    ReportJob,
)
from CHARGEBACK.server.entities.notifications import (
    REFRESH_MESSAGES,
    REPORT_MESSAGES,
    Notification,
    SessionMessages,
)
from CHARGEBACK.server.entities.settings import JobSettings
from CHARGEBACK.server.services.client import ChargebackApiClient

StatusReader = Callable[[], Awaitable[JobStatusSnapshot]]
Notifier = Callable[[Notification], None]

SESSION_PENDING = "pending"
SESSION_POLLING = "polling"
SESSION_COMPLETED = "completed"
SESSION_FAILED = "failed"
SESSION_ERROR = "error"
SESSION_CANCELLED = "cancelled"


###############################################################################
class PerKeyStopPolicy:
    """Stops once every watched key reports `completed` or `failed`."""

    name = STOP_POLICY_PER_KEY

    def should_stop(
        self,
        snapshot: JobStatusSnapshot,
        keys: tuple[str, ...],
        seen_active: bool = False,
    ) -> bool:
        return all(snapshot.status_of(key) in TERMINAL_STATUSES for key in keys)

    def failed_keys(
        self, snapshot: JobStatusSnapshot, keys: tuple[str, ...]
    ) -> list[str]:
        return [key for key in keys if snapshot.status_of(key) == STATUS_FAILED]


###############################################################################
class GlobalStopPolicy:
    """Stops once the top-level status leaves the running state.

    `completed` and `failed` end the session at once. `idle` only counts after
    the session has observed `running` or `processing`, since the backend may
    still report `idle` right after accepting the job.
    """

    name = STOP_POLICY_GLOBAL

    def should_stop(
        self,
        snapshot: JobStatusSnapshot,
        keys: tuple[str, ...],
        seen_active: bool = False,
    ) -> bool:
        if snapshot.status in TERMINAL_STATUSES:
            return True
        return snapshot.status == STATUS_IDLE and seen_active

    def failed_keys(
        self, snapshot: JobStatusSnapshot, keys: tuple[str, ...]
    ) -> list[str]:
        return list(keys) if snapshot.status == STATUS_FAILED else []


STOP_POLICIES: dict[str, PerKeyStopPolicy | GlobalStopPolicy] = {
    STOP_POLICY_PER_KEY: PerKeyStopPolicy(),
    STOP_POLICY_GLOBAL: GlobalStopPolicy(),
}


# -----------------------------------------------------------------------------
def resolve_job_endpoints(job_keys: Iterable[str]) -> list[JobEndpoint]:
    keys = set(job_keys)
    if not keys:
        raise ValidationError("Please select at least one item to refresh.")
    unknown = sorted(key for key in keys if key not in JOB_ENDPOINTS)
    if unknown:
        raise ValidationError(f"Unknown refresh targets: {', '.join(unknown)}")
    return sorted((JOB_ENDPOINTS[key] for key in keys), key=lambda e: e.priority)


###############################################################################
class PollSession:
    """One `start -> status reads -> stop` cycle, owned by a single view.

    The repeating timer is an asyncio task. Reads are awaited inside that task,
    so they never overlap; ticks that elapse while a read is in flight are
    skipped. Exactly one terminal notification is published, unless the
    session is cancelled first, in which case none is.
    """

    def __init__(
        self,
        family: str,
        job_keys: Iterable[str],
        read_status: StatusReader,
        notifier: Notifier,
        messages: SessionMessages,
        stop_policy: PerKeyStopPolicy | GlobalStopPolicy,
        interval: float,
    ) -> None:
        self.session_id = str(uuid.uuid4())[:8]
        self.family = family
        self.job_keys = tuple(job_keys)
        self.read_status = read_status
        self.notifier = notifier
        self.messages = messages
        self.stop_policy = stop_policy
        self.interval = max(0.0, float(interval))
        self.state = SESSION_PENDING
        self.snapshot: JobStatusSnapshot | None = None
        self.reads = 0
        self.skipped_ticks = 0
        self.seen_active = False
        self.error: str | None = None
        self.failure: JobFailure | None = None
        self.timer: asyncio.Task[None] | None = None
        self.timer_cleared = False
        self.notified = False

    # -------------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.state in (SESSION_PENDING, SESSION_POLLING)

    # -------------------------------------------------------------------------
    def start_polling(self) -> None:
        if self.state != SESSION_PENDING:
            return
        self.state = SESSION_POLLING
        self.timer = asyncio.get_running_loop().create_task(
            self.run(), name=f"poll-{self.family}-{self.session_id}"
        )
        session_logger.info(
            "Started %s session %s (keys=%s, policy=%s, interval=%.1fs)",
            self.family,
            self.session_id,
            ", ".join(self.job_keys),
            self.stop_policy.name,
            self.interval,
        )

    # -------------------------------------------------------------------------
    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self.state == SESSION_POLLING:
            try:
                snapshot = await self.read_status()
            except StatusReadError as exc:
                if self.state == SESSION_POLLING:
                    self.stop_with_error(exc.message)
                return
            except Exception as exc:  # noqa: BLE001
                if self.state == SESSION_POLLING:
                    self.stop_with_error(summarize_error(exc))
                return

            if self.state != SESSION_POLLING:
                return
            self.snapshot = snapshot
            self.reads += 1
            if snapshot.status in ACTIVE_STATUSES:
                self.seen_active = True
            session_logger.debug(
                "Session %s read #%d: %s",
                self.session_id,
                self.reads,
                snapshot.status or snapshot.to_dict()["details"],
            )
            if self.stop_policy.should_stop(snapshot, self.job_keys, self.seen_active):
                self.stop_with_outcome(snapshot)
                return

            next_tick += self.interval
            now = loop.time()
            if self.interval > 0 and now > next_tick:
                missed = int((now - next_tick) // self.interval) + 1
                self.skipped_ticks += missed
                next_tick += missed * self.interval
            await asyncio.sleep(max(0.0, next_tick - now))

    # -------------------------------------------------------------------------
    def clear_timer(self) -> bool:
        if self.timer_cleared:
            return False
        self.timer_cleared = True
        timer = self.timer
        if timer is not None and not timer.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if timer is not current:
                timer.cancel()
        return True

    # -------------------------------------------------------------------------
    def notify_once(self, notification: Notification) -> None:
        if self.notified:
            return
        self.notified = True
        self.notifier(notification)

    # -------------------------------------------------------------------------
    def stop_with_outcome(self, snapshot: JobStatusSnapshot) -> None:
        self.clear_timer()
        failed_keys = self.stop_policy.failed_keys(snapshot, self.job_keys)
        if failed_keys:
            self.failure = JobFailure(failed_keys)
            self.state = SESSION_FAILED
            session_logger.warning(
                "Session %s finished with failures: %s",
                self.session_id,
                ", ".join(failed_keys),
            )
        else:
            self.state = SESSION_COMPLETED
            session_logger.info(
                "Session %s completed after %d reads", self.session_id, self.reads
            )
        self.notify_once(self.messages.outcome(bool(failed_keys)))

    # -------------------------------------------------------------------------
    def stop_with_error(self, message: str) -> None:
        self.clear_timer()
        self.state = SESSION_ERROR
        self.error = message
        session_logger.error(
            "Session %s stopped, status read failed: %s", self.session_id, message
        )
        self.notify_once(self.messages.read_error(message))

    # -------------------------------------------------------------------------
    def cancel(self) -> bool:
        if not self.is_active:
            return False
        self.state = SESSION_CANCELLED
        self.clear_timer()
        session_logger.info("Cancelled %s session %s", self.family, self.session_id)
        return True

    # -------------------------------------------------------------------------
    async def wait_closed(self) -> None:
        if self.timer is None:
            return
        try:
            await asyncio.shield(self.timer)
        except asyncio.CancelledError:
            if not self.timer.cancelled():
                raise

    # -------------------------------------------------------------------------
    @property
    def outcome(self) -> str | None:
        if self.state == SESSION_COMPLETED:
            return "success"
        if self.state == SESSION_FAILED:
            return "failure"
        if self.state == SESSION_ERROR:
            return "error"
        return None

    # -------------------------------------------------------------------------
    def snapshot_payload(self) -> dict[str, Any]:
        snapshot = self.snapshot
        return {
            "session_id": self.session_id,
            "family": self.family,
            "state": self.state,
            "job_keys": list(self.job_keys),
            "statuses": {
                key: snapshot.status_of(key) if snapshot else None
                for key in self.job_keys
            },
            "global_status": snapshot.status if snapshot else None,
            "reads": self.reads,
            "outcome": self.outcome,
            "error": self.error,
            "last_updated": snapshot.last_updated if snapshot else None,
            "poll_interval": self.interval,
        }


###############################################################################
class JobPoller:
    """Base for the `submit` then `start_polling` workflow of one job family.

    A poller belongs to one dashboard view and holds at most one active
    session. Once closed, it neither submits nor starts sessions again, and a
    submission still awaiting the backend when the view closes is dropped
    before polling starts.
    """

    family = ""
    messages: SessionMessages = REFRESH_MESSAGES

    def __init__(
        self,
        client: ChargebackApiClient,
        notifier: Notifier,
        settings: JobSettings,
        stop_policy: str,
    ) -> None:
        self.client = client
        self.notifier = notifier
        self.settings = settings
        self.stop_policy = STOP_POLICIES[stop_policy]
        self.session: PollSession | None = None
        self.submitted_keys: tuple[str, ...] | None = None
        self.submitting = False
        self.closed = False

    # -------------------------------------------------------------------------
    @property
    def is_polling(self) -> bool:
        return self.session is not None and self.session.is_active

    # -------------------------------------------------------------------------
    def ensure_open(self) -> None:
        if self.closed:
            raise ViewNotFoundError(
                f"The view owning this {self.family} job has been closed."
            )

    # -------------------------------------------------------------------------
    def ensure_idle(self) -> None:
        self.ensure_open()
        if self.submitting or self.is_polling:
            raise SessionConflictError(
                f"A {self.family} job is already running for this view."
            )

    # -------------------------------------------------------------------------
    def reject(self, title: str, description: str) -> None:
        self.notifier(
            Notification(title=title, description=description, variant="destructive")
        )
        logger.warning("Rejected %s submission: %s", self.family, description)

    # -------------------------------------------------------------------------
    def watched_keys(self) -> tuple[str, ...]:
        return self.session.job_keys if self.session is not None else ()

    # -------------------------------------------------------------------------
    async def read_status(self) -> JobStatusSnapshot:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    def start_polling(self) -> PollSession:
        if self.session is not None and self.session.is_active:
            return self.session
        self.ensure_open()
        if self.submitted_keys is None:
            raise ValidationError(f"No {self.family} job has been submitted.")

        session = PollSession(
            family=self.family,
            job_keys=self.submitted_keys,
            read_status=self.read_status,
            notifier=self.notifier,
            messages=self.messages,
            stop_policy=self.stop_policy,
            interval=self.settings.polling_interval,
        )
        self.submitted_keys = None
        self.session = session
        session.start_polling()
        return session

    # -------------------------------------------------------------------------
    def close(self) -> None:
        self.closed = True
        self.submitted_keys = None
        if self.session is not None:
            self.session.cancel()


###############################################################################
class RefreshPoller(JobPoller):
    family = JOB_FAMILY_REFRESH
    messages = REFRESH_MESSAGES

    def __init__(
        self,
        client: ChargebackApiClient,
        notifier: Notifier,
        settings: JobSettings,
    ) -> None:
        super().__init__(client, notifier, settings, settings.refresh_stop_policy)

    # -------------------------------------------------------------------------
    async def read_status(self) -> JobStatusSnapshot:
        return await self.client.fetch_refresh_status(self.watched_keys())

    # -------------------------------------------------------------------------
    async def dispatch(self, endpoints: list[JobEndpoint]) -> None:
        if self.settings.dispatch_mode == DISPATCH_MODE_SEQUENTIAL:
            for endpoint in endpoints:
                await self.client.trigger_job(endpoint)
            return

        results = await asyncio.gather(
            *(self.client.trigger_job(endpoint) for endpoint in endpoints),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    # -------------------------------------------------------------------------
    async def submit(self, job_keys: Iterable[str]) -> list[JobEndpoint]:
        self.ensure_idle()
        self.submitting = True
        try:
            keys = set(job_keys)
            if not keys:
                self.reject(
                    "No items selected", "Please select at least one item to refresh."
                )
                raise ValidationError("Please select at least one item to refresh.")
            try:
                endpoints = resolve_job_endpoints(keys)
            except ValidationError as exc:
                self.reject("Invalid selection", exc.message)
                raise

            try:
                await self.dispatch(endpoints)
            except SubmissionError:
                self.reject("Error", "Failed to start refresh. Please try again.")
                raise
            self.ensure_open()
        finally:
            self.submitting = False

        self.submitted_keys = tuple(endpoint.status_key for endpoint in endpoints)
        logger.info(
            "Submitted refresh for %s", ", ".join(endpoint.key for endpoint in endpoints)
        )
        return endpoints

    # -------------------------------------------------------------------------
    async def run(self, job_keys: Iterable[str]) -> PollSession:
        await self.submit(job_keys)
        return self.start_polling()


###############################################################################
class ReportPoller(JobPoller):
    family = JOB_FAMILY_REPORT
    messages = REPORT_MESSAGES

    def __init__(
        self,
        client: ChargebackApiClient,
        notifier: Notifier,
        settings: JobSettings,
    ) -> None:
        # /status only exposes a top-level flag, so per-key stopping is not
        # available for report generation.
        super().__init__(client, notifier, settings, STOP_POLICY_GLOBAL)

    # -------------------------------------------------------------------------
    async def read_status(self) -> JobStatusSnapshot:
        return await self.client.fetch_generation_status()

    # -------------------------------------------------------------------------
    @staticmethod
    def as_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    # -------------------------------------------------------------------------
    @classmethod
    def format_date(cls, value: datetime) -> str:
        return cls.as_utc(value).isoformat().replace("+00:00", "Z")

    # -------------------------------------------------------------------------
    async def build_job(
        self,
        name: str,
        from_date: datetime | None,
        to_date: datetime | None,
        dg_ids: Iterable[int] | None,
    ) -> ReportJob:
        cleaned_name = (name or "").strip()
        if not cleaned_name or from_date is None or to_date is None:
            raise ValidationError("Please select dates and enter a report name.")
        from_date, to_date = self.as_utc(from_date), self.as_utc(to_date)
        if from_date > to_date:
            raise ValidationError("The report start date must precede its end date.")

        if dg_ids is None:
            # "All DGs" selection
            try:
                selected_ids = tuple(await self.client.list_dg_ids())
            except BackendError as exc:
                raise SubmissionError(
                    f"Unable to load delivery groups: {exc.message}"
                ) from exc
        else:
            selected_ids = tuple(int(dg_id) for dg_id in dg_ids)
        if not selected_ids:
            raise ValidationError("Select at least one delivery group.")

        return ReportJob(
            name=cleaned_name,
            from_date=self.format_date(from_date),
            to_date=self.format_date(to_date),
            dg_ids=selected_ids,
            report_format=REPORT_FORMAT_JSON,
        )

    # -------------------------------------------------------------------------
    async def submit(
        self,
        name: str,
        from_date: datetime | None,
        to_date: datetime | None,
        dg_ids: Iterable[int] | None = None,
    ) -> ReportJob:
        self.ensure_idle()
        self.submitting = True
        try:
            try:
                job = await self.build_job(name, from_date, to_date, dg_ids)
                await self.client.generate_report(job)
            except ValidationError as exc:
                self.reject("Invalid report request", exc.message)
                raise
            except SubmissionError as exc:
                self.reject("Error", exc.message)
                raise
            self.ensure_open()
        finally:
            self.submitting = False

        self.submitted_keys = (REPORT_JOB_KEY,)
        logger.info("Submitted report generation '%s' for %d DGs", job.name, len(job.dg_ids))
        return job

    # -------------------------------------------------------------------------
    async def run(
        self,
        name: str,
        from_date: datetime | None,
        to_date: datetime | None,
        dg_ids: Iterable[int] | None = None,
    ) -> PollSession:
        await self.submit(name, from_date, to_date, dg_ids)
        return self.start_polling()
