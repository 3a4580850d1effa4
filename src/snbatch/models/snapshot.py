"""Poll snapshots and status normalization for long-running jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class JobStatus(str, Enum):
    """Normalized job status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


_STATUS_CODES: dict[int, JobStatus] = {
    0: JobStatus.PENDING,
    1: JobStatus.RUNNING,
    2: JobStatus.SUCCEEDED,
    3: JobStatus.FAILED,
}

_STATUS_TOKENS: dict[str, JobStatus] = {
    "complete": JobStatus.SUCCEEDED,
    "success": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "pending": JobStatus.PENDING,
}


def _parse_code(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text.isascii():
            return None
        if text.isdigit():
            return int(text)
        try:
            value = float(text)
        except ValueError:
            return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def normalize_status(value: Any) -> JobStatus:
    """
    Normalize either status encoding used by the CI/CD API.

    Numeric codes (int, integral float, or a string of either) take precedence:
    0 pending, 1 running, 2 succeeded, 3 failed. Otherwise the text is
    lower-cased: complete/success -> succeeded, failed -> failed,
    pending -> pending, anything else -> running.
    """
    code = _parse_code(value)
    if code is not None and code in _STATUS_CODES:
        return _STATUS_CODES[code]
    if code is not None:
        return JobStatus.RUNNING

    token = str(value).strip().lower() if value is not None else ""
    return _STATUS_TOKENS.get(token, JobStatus.RUNNING) if token else JobStatus.PENDING


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_percent(value: Any) -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return 0.0
    if pct != pct:  # NaN
        return 0.0
    return max(0.0, min(100.0, pct))


@dataclass(frozen=True, slots=True)
class PollSnapshot:
    """One normalized observation of a job's progress."""

    percent: float
    status: JobStatus
    message: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        """Terminal when the status is final or progress reached 100%."""
        return self.status.is_terminal or self.percent >= 100

    @property
    def succeeded(self) -> bool:
        """
        Success classification of a terminal snapshot.

        A snapshot at 100% without a recognized final status counts as
        success unless it carries an error message.
        """
        if self.status is JobStatus.SUCCEEDED:
            return True
        if self.status is JobStatus.FAILED:
            return False
        return self.percent >= 100 and not self.message


def normalize_snapshot(payload: Mapping[str, Any]) -> PollSnapshot:
    """Build a PollSnapshot from a progress payload (`result` already unwrapped)."""
    percent = _parse_percent(_first(payload, "percent_complete", "percentComplete"))
    status = normalize_status(_first(payload, "status", "state"))

    # status_message also carries progress chatter; it is a failure message
    # only once the job failed.
    msg = _first(payload, "error")
    if msg is None and status is JobStatus.FAILED:
        msg = _first(payload, "status_message", "statusMessage", "status_detail")
    message = str(msg) if msg is not None else None

    return PollSnapshot(percent=percent, status=status, message=message, raw=dict(payload))
