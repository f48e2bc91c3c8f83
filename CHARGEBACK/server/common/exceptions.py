from __future__ import annotations

from collections.abc import Iterable

MAX_ERROR_LENGTH = 200


# -----------------------------------------------------------------------------
def summarize_error(exc: BaseException | str) -> str:
    text = str(exc).strip()
    if not text and isinstance(exc, BaseException):
        text = exc.__class__.__name__
    return text.split("\n")[0][:MAX_ERROR_LENGTH]


###############################################################################
class ChargebackError(Exception):
    """Base class for errors raised while talking to the chargeback backend."""

    def __init__(self, message: str) -> None:
        super().__init__(summarize_error(message))
        self.message = summarize_error(message)


###############################################################################
class ValidationError(ChargebackError):
    """Rejected input; no request has been sent."""


###############################################################################
class SubmissionError(ChargebackError):
    """A trigger request failed; no poll session was started."""


###############################################################################
class StatusReadError(ChargebackError):
    """The status endpoint failed or returned data that cannot be parsed."""


###############################################################################
class BackendError(ChargebackError):
    """A forwarded request to the backend failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


###############################################################################
class JobFailure(ChargebackError):
    """The backend reported `failed` for one or more watched jobs."""

    def __init__(self, failed_keys: Iterable[str]) -> None:
        self.failed_keys = tuple(failed_keys)
        keys = ", ".join(self.failed_keys) or "global"
        super().__init__(f"Jobs reported as failed: {keys}")


###############################################################################
class ViewNotFoundError(ChargebackError):
    pass


###############################################################################
class SessionConflictError(ChargebackError):
    """A poll session of the same family is still running for the view."""
