"""Result models for install and rollback runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

from .package import PackageItem

ItemStatus = Literal["succeeded", "failed", "not_run"]


class InstallOutcome(str, Enum):
    """Aggregate verdict of a run, mapped to caller exit statuses."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        if self is InstallOutcome.SUCCESS:
            return 0
        if self is InstallOutcome.PARTIAL:
            return 1
        return 2


def aggregate_outcome(succeeded: int, failed: int) -> InstallOutcome:
    """Zero failures -> success; zero successes -> failed; otherwise partial."""
    if failed == 0:
        return InstallOutcome.SUCCESS
    if succeeded == 0:
        return InstallOutcome.FAILED
    return InstallOutcome.PARTIAL


@dataclass(slots=True)
class ItemResult:
    """Outcome for a single package."""

    item: PackageItem
    status: ItemStatus
    job_id: Optional[str] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None
    elapsed_sec: Optional[float] = None

    @property
    def scope(self) -> str:
        return self.item.scope


@dataclass(slots=True)
class InstallResult:
    """
    Aggregate result of an install (or rollback) run.

    Items that were never submitted (after a halt) are listed as `not_run`
    and do not count towards the outcome.
    """

    mode: str
    results: list[ItemResult]
    rollback_versions: dict[str, str] = field(default_factory=dict)
    job_ids: list[str] = field(default_factory=list)
    rollback_digest: Optional[str] = None
    rollback_hint: Optional[str] = None
    halted: bool = False

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "succeeded"]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def not_run(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "not_run"]

    @property
    def outcome(self) -> InstallOutcome:
        return aggregate_outcome(len(self.succeeded), len(self.failed))

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code

    def summary(self) -> dict[str, int]:
        return {
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "not_run": len(self.not_run),
        }


@dataclass(slots=True)
class RollbackOutcome:
    """Outcome of one rollback job (a whole batch, or one scope)."""

    job_id: Optional[str]
    succeeded: bool
    scope: Optional[str] = None
    version: Optional[str] = None
    reason: Optional[str] = None


@dataclass(slots=True)
class RollbackResult:
    """Aggregate result of a rollback run."""

    mode: str
    outcomes: list[RollbackOutcome]
    rollback_hint: Optional[str] = None
    halted: bool = False

    @property
    def outcome(self) -> InstallOutcome:
        ok = sum(1 for o in self.outcomes if o.succeeded)
        return aggregate_outcome(ok, len(self.outcomes) - ok)

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code
