"""Poll state machine: drive one submitted job to a terminal snapshot."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterator, Protocol

from snbatch.errors import PollTimeoutError, RateLimitError
from snbatch.models import JobHandle, PollSnapshot, normalize_snapshot

from .retry import is_transient, parse_retry_after

logger = logging.getLogger(__name__)

DEFAULT_MAX_POLL_DURATION_SEC: float = 2 * 60 * 60


class StatusSource(Protocol):
    def poll_status(self, job_id: str) -> dict[str, Any]: ...


def poll_job(
    source: StatusSource,
    handle: JobHandle,
    *,
    interval: float = 10.0,
    max_duration: float = DEFAULT_MAX_POLL_DURATION_SEC,
    max_errors: int = 3,
    backoff_base: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Iterator[PollSnapshot]:
    """
    Yield normalized snapshots of one job until it reaches a terminal state.

    Cycle:
        - rate limited: wait per Retry-After (30s fallback), not counted as an error
        - transient error below `max_errors` consecutive: wait
          backoff_base * 2 ** (n - 1), retry
        - any other error, or too many transient ones: raised
        - success: yield; stop when terminal (final status or percent >= 100),
          otherwise wait `interval`

    No wait extends past the deadline.

    Raises:
        PollTimeoutError: if `max_duration` elapses without a terminal snapshot.

    Note:
        There is no remote cancel. Abandoning the iterator (or hitting the
        deadline) stops local polling only; the job keeps running server-side.
    """
    handle.ensure_open()
    deadline = clock() + max_duration
    consecutive_errors = 0

    def wait(seconds: float) -> None:
        # Never sleep past the deadline.
        sleep(max(0.0, min(seconds, deadline - clock())))

    while clock() < deadline:
        try:
            payload = source.poll_status(handle.job_id)
        except RateLimitError as exc:
            delay = parse_retry_after(exc.details.get("retry_after"))
            logger.info("Progress poll rate limited for job %s; waiting %.0fs", handle.job_id, delay)
            wait(delay)
            continue
        except Exception as exc:
            if is_transient(exc) and consecutive_errors < max_errors:
                consecutive_errors += 1
                delay = backoff_base * (2 ** (consecutive_errors - 1))
                logger.info(
                    "Transient poll error for job %s (%d/%d): %s",
                    handle.job_id,
                    consecutive_errors,
                    max_errors,
                    exc,
                )
                wait(delay)
                continue
            raise

        consecutive_errors = 0
        snapshot = normalize_snapshot(payload)
        yield snapshot

        if snapshot.is_terminal:
            handle.close()
            return

        wait(interval)

    minutes = max_duration / 60
    raise PollTimeoutError(
        f"Polling timed out after {minutes:g} minutes. "
        "The job may still be running server-side, unattended.",
        details={"job_id": handle.job_id, "max_duration_sec": max_duration},
    )


def last_snapshot(snapshots: Iterator[PollSnapshot]) -> PollSnapshot:
    """Drain a snapshot stream and return its terminal snapshot."""
    final = None
    for snap in snapshots:
        final = snap
    if final is None:
        raise PollTimeoutError("Job produced no snapshot before the deadline")
    return final
