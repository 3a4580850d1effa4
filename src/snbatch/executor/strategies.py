"""Install strategies: sequential (one job per item) and batch (one job)."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from snbatch.controller import CicdController, last_snapshot, poll_job
from snbatch.errors import (
    AuthError,
    ForbiddenError,
    InvalidStateError,
    NetworkError,
    PollTimeoutError,
    SnBatchError,
)
from snbatch.models import (
    InstallResult,
    ItemResult,
    JobHandle,
    JobStatus,
    PackageItem,
    PollSnapshot,
    normalize_status,
)

from .options import FailurePolicy, InstallOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollSettings:
    """Parameters handed to the poll state machine for every job."""

    interval: float
    max_duration: float
    max_errors: int
    backoff_base: float
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)
    clock: Callable[[], float] = field(default=time.monotonic, compare=False)


def is_fatal(exc: SnBatchError) -> bool:
    """Errors that mean the run cannot continue at all."""
    return isinstance(
        exc,
        (
            PollTimeoutError,
            AuthError,
            ForbiddenError,
            NetworkError,
            InvalidStateError,
        ),
    )


def attach_partial(exc: SnBatchError, partial: InstallResult) -> None:
    """Record what was completed before a fatal error; nothing is rolled back."""
    exc.details["partial_result"] = partial


class JobDriver:
    """Submits through a controller and polls each job to completion."""

    def __init__(self, controller: CicdController, poll: PollSettings) -> None:
        self._controller = controller
        self._poll = poll

    def drive(self, handle: JobHandle) -> PollSnapshot:
        """Poll one job to its terminal snapshot."""
        snapshots = poll_job(
            self._controller,
            handle,
            interval=self._poll.interval,
            max_duration=self._poll.max_duration,
            max_errors=self._poll.max_errors,
            backoff_base=self._poll.backoff_base,
            sleep=self._poll.sleep,
            clock=self._poll.clock,
        )
        final = last_snapshot(snapshots)
        logger.debug(
            "Job %s finished: %s at %.0f%%", handle.job_id, final.status.value, final.percent
        )
        return final


class InstallStrategy(JobDriver, ABC):
    """Submit -> poll -> classify -> record rollback, shared by both modes."""

    mode: str = ""

    @abstractmethod
    def run(self, items: Sequence[PackageItem], options: InstallOptions) -> InstallResult:
        raise NotImplementedError


class SequentialStrategy(InstallStrategy):
    """
    Install items one at a time, in the given order.

    Item N+1 is never submitted before item N reached a terminal state.
    """

    mode = "sequential"

    def __init__(
        self,
        controller: CicdController,
        poll: PollSettings,
        *,
        stop_on_error: bool = False,
    ) -> None:
        super().__init__(controller, poll)
        self._stop_on_error = stop_on_error

    def run(self, items: Sequence[PackageItem], options: InstallOptions) -> InstallResult:
        policy = options.resolve_failure_policy(stop_on_error=self._stop_on_error)
        result = InstallResult(mode=self.mode, results=[])
        total = len(items)

        for index, item in enumerate(items):
            if result.halted:
                result.results.append(ItemResult(item=item, status="not_run"))
                continue

            logger.info(
                "[%d/%d] Installing %s %s -> %s",
                index + 1,
                total,
                item.scope,
                item.current_version,
                item.target_version,
            )
            try:
                item_result = self._install_one(item, result)
            except SnBatchError as exc:
                self._abort(exc, items, index, result)
                raise
            result.results.append(item_result)

            remaining = total - index - 1
            if item_result.status == "failed" and remaining > 0:
                if not self._should_continue(policy, item, remaining, options):
                    logger.warning(
                        "Halting after failure of %s; %d item(s) not run", item.scope, remaining
                    )
                    result.halted = True

        return result

    def _install_one(self, item: PackageItem, result: InstallResult) -> ItemResult:
        start = self._poll.clock()
        job_id = None
        try:
            handle = self._controller.submit_single_install(
                item.scope,
                item.target_version,
                load_demo_data=item.load_demo_data,
            )
            job_id = handle.job_id
            result.job_ids.append(job_id)
            final = self.drive(handle)
        except SnBatchError as exc:
            if is_fatal(exc):
                if job_id is not None:
                    exc.details.setdefault("job_id", job_id)
                raise
            logger.warning("Install of %s failed: %s", item.scope, exc)
            return ItemResult(
                item=item,
                status="failed",
                reason=str(exc),
                error_type=exc.__class__.__name__,
                elapsed_sec=self._poll.clock() - start,
            )

        elapsed = self._poll.clock() - start
        if final.succeeded:
            result.rollback_versions[item.scope] = handle.rollback_version or item.current_version
            logger.info("Installed %s %s (%.0fs)", item.scope, item.target_version, elapsed)
            return ItemResult(item=item, status="succeeded", job_id=handle.job_id, elapsed_sec=elapsed)

        reason = final.message or "Install failed"
        logger.warning("Install of %s failed: %s", item.scope, reason)
        return ItemResult(
            item=item,
            status="failed",
            job_id=handle.job_id,
            reason=reason,
            elapsed_sec=elapsed,
        )

    def _abort(
        self,
        exc: SnBatchError,
        items: Sequence[PackageItem],
        index: int,
        result: InstallResult,
    ) -> None:
        """Fail the in-flight item, mark the rest not run, attach the partial result."""
        result.results.append(
            ItemResult(
                item=items[index],
                status="failed",
                job_id=exc.details.get("job_id"),
                reason=str(exc),
                error_type=exc.__class__.__name__,
            )
        )
        result.results.extend(ItemResult(item=item, status="not_run") for item in items[index + 1 :])
        result.halted = True
        attach_partial(exc, result)

    def _should_continue(
        self,
        policy: FailurePolicy,
        item: PackageItem,
        remaining: int,
        options: InstallOptions,
    ) -> bool:
        if policy is FailurePolicy.CONTINUE:
            return True
        if policy is FailurePolicy.ASK and options.confirm_continue is not None:
            return bool(options.confirm_continue(item, remaining))
        return False


class BatchStrategy(InstallStrategy):
    """
    Install all items as one remote job.

    The batch has a single rollback token that reverts the whole batch; there
    is no partial-batch rollback.
    """

    mode = "batch"

    def run(self, items: Sequence[PackageItem], options: InstallOptions) -> InstallResult:
        result = InstallResult(mode=self.mode, results=[])
        try:
            handle = self._controller.submit_batch_install(
                [item.to_install_payload() for item in items],
                name=options.batch_name,
            )
        except SnBatchError as exc:
            return self._fail_all(exc, items, result)
        result.job_ids.append(handle.job_id)

        # The raw token is not kept past this point.
        if handle.rollback is not None:
            result.rollback_digest = handle.rollback.digest()
            result.rollback_hint = handle.rollback.hint()
            handle.rollback = None

        logger.info(
            "Batch install of %d package(s) started: job %s, rollback token %s",
            len(items),
            handle.job_id,
            result.rollback_hint or "none",
        )

        try:
            final = self.drive(handle)
        except SnBatchError as exc:
            return self._fail_all(exc, items, result)

        rows = self._per_item_rows(handle, final)
        result.results.extend(_classify_rows(items, rows, final))
        return result

    def _fail_all(
        self,
        exc: SnBatchError,
        items: Sequence[PackageItem],
        result: InstallResult,
    ) -> InstallResult:
        result.results.extend(
            ItemResult(
                item=item,
                status="failed",
                reason=str(exc),
                error_type=exc.__class__.__name__,
            )
            for item in items
        )
        if is_fatal(exc):
            attach_partial(exc, result)
            raise exc
        logger.warning("Batch install failed: %s", exc)
        return result

    def _per_item_rows(self, handle: JobHandle, final: PollSnapshot) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        if handle.results_ref:
            try:
                rows = self._controller.fetch_batch_results(handle.results_ref)
            except SnBatchError as exc:
                logger.warning("Failed to fetch batch results %s: %s", handle.results_ref, exc)
        if not rows:
            rows = _embedded_rows(final.raw)
        return rows


def _embedded_rows(raw: dict[str, Any]) -> list[dict[str, Any]]:
    packages = raw.get("packages")
    if not isinstance(packages, list):
        nested = raw.get("result")
        packages = nested.get("packages") if isinstance(nested, dict) else None
    if not isinstance(packages, list):
        return []
    return [p for p in packages if isinstance(p, dict)]


def _row_keys(row: dict[str, Any]) -> list[str]:
    keys = []
    for name in ("id", "sys_id", "scope", "name"):
        value = row.get(name)
        if isinstance(value, str) and value:
            keys.append(value)
    return keys


def _find_row(item: PackageItem, index: dict[str, dict[str, Any]]) -> Optional[dict[str, Any]]:
    for key in (item.source_ref, item.scope, item.name):
        if key and key in index:
            return index[key]
    return None


def _classify_rows(
    items: Sequence[PackageItem],
    rows: list[dict[str, Any]],
    final: PollSnapshot,
) -> list[ItemResult]:
    """
    Per-item results of a finished batch.

    Without any per-item rows every item takes the batch's own terminal
    status; an item missing from a non-empty row set counts as failed.
    """
    if not rows:
        status = "succeeded" if final.succeeded else "failed"
        reason = None if final.succeeded else (final.message or "Batch install failed")
        return [ItemResult(item=item, status=status, reason=reason) for item in items]

    index: dict[str, dict[str, Any]] = {}
    for row in rows:
        for key in _row_keys(row):
            index.setdefault(key, row)

    results: list[ItemResult] = []
    for item in items:
        row = _find_row(item, index)
        if row is None:
            results.append(
                ItemResult(item=item, status="failed", reason="No result reported for package")
            )
            continue

        status = normalize_status(row.get("status", row.get("state")))
        if status is JobStatus.SUCCEEDED:
            results.append(ItemResult(item=item, status="succeeded"))
        else:
            reason = row.get("status_message") or row.get("error") or f"Status: {status.value}"
            results.append(ItemResult(item=item, status="failed", reason=str(reason)))
    return results
