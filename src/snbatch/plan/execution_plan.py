"""ExecutionPlan model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from snbatch._version import __version__
from snbatch.errors import PlanValidationError
from snbatch.models import PackageItem
from snbatch.util.time import require_aware, now_utc
from snbatch.util.version import UpgradeType

PLAN_FORMAT_VERSION: int = 1


@dataclass(frozen=True, slots=True)
class PlanMetadata:
    """Where and when a plan was recorded."""

    created_at: datetime
    source_ref: str
    source_version_label: str = "Unknown"
    profile: Optional[str] = None
    tool_version: str = __version__


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    """
    A reviewable, deterministic plan of package upgrades for one environment.

    Items are kept sorted by scope and must be unique per scope.
    """

    metadata: PlanMetadata
    items: tuple[PackageItem, ...]
    format_version: int = PLAN_FORMAT_VERSION
    stats: dict[str, int] = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", sort_items(self.items))
        object.__setattr__(self, "stats", compute_stats(self.items))

    @property
    def scopes(self) -> list[str]:
        return [item.scope for item in self.items]

    def get(self, scope: str) -> PackageItem:
        for item in self.items:
            if item.scope == scope:
                return item
        raise KeyError(scope)

    def filter(self, *magnitudes: UpgradeType) -> tuple[PackageItem, ...]:
        """Items whose magnitude is one of `magnitudes`."""
        wanted = set(magnitudes)
        return tuple(item for item in self.items if item.magnitude in wanted)


def compute_stats(items: Iterable[PackageItem]) -> dict[str, int]:
    """Count items per upgrade magnitude, plus the total."""
    stats = {"total": 0}
    for magnitude in UpgradeType:
        stats[magnitude.value] = 0
    for item in items:
        stats["total"] += 1
        stats[item.magnitude.value] += 1
    return stats


def sort_items(items: Iterable[PackageItem]) -> tuple[PackageItem, ...]:
    """Sort by scope, rejecting duplicate scopes."""
    ordered = tuple(sorted(items, key=lambda item: item.scope))
    duplicates = sorted(
        {a.scope for a, b in zip(ordered, ordered[1:]) if a.scope == b.scope}
    )
    if duplicates:
        raise PlanValidationError([f"Duplicate scope: {scope}" for scope in duplicates])
    return ordered


def build_plan(
    items: Iterable[PackageItem],
    *,
    source_ref: str,
    source_version_label: str = "Unknown",
    profile: Optional[str] = None,
    tool_version: str = __version__,
    created_at: Optional[datetime] = None,
) -> ExecutionPlan:
    """
    Build an immutable plan from an unordered item collection.

    Raises:
        PlanValidationError: on duplicate scopes.
    """
    metadata = PlanMetadata(
        created_at=require_aware(created_at) if created_at is not None else now_utc(),
        source_ref=source_ref,
        source_version_label=source_version_label,
        profile=profile,
        tool_version=tool_version,
    )
    return ExecutionPlan(metadata=metadata, items=tuple(items))
