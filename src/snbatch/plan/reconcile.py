"""Reconciliation: map a plan recorded on one environment onto another."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

from snbatch.models import InstalledPackage, PackageItem
from snbatch.util.version import compare_versions

from .execution_plan import ExecutionPlan, build_plan


class VerdictKind(str, Enum):
    INCLUDE = "include"
    SKIP_NOT_INSTALLED = "skip-not-installed"
    SKIP_ALREADY_CURRENT = "skip-already-current"
    SKIP_TARGET_AHEAD = "skip-target-ahead"
    EXTRA_ON_TARGET = "extra-on-target"


@dataclass(frozen=True, slots=True)
class Verdict:
    """
    Reconciliation outcome for one scope.

    `item` is the source plan item (None for extras). `observed_version` is
    what the target reports, None when the scope is not installed there.
    `version_mismatch` flags included items whose starting version on the
    target differs from the one recorded in the source plan.
    """

    scope: str
    kind: VerdictKind
    item: Optional[PackageItem] = None
    observed_version: Optional[str] = None
    version_mismatch: bool = False
    target: Optional[InstalledPackage] = None


def reconcile(
    source_items: Sequence[PackageItem],
    target_packages: Iterable[InstalledPackage],
) -> list[Verdict]:
    """
    Diff source plan items against a target environment's live packages.

    Pure: no I/O, inputs are not mutated. Every source item yields exactly one
    verdict (in source order); every target scope absent from the source
    yields one EXTRA_ON_TARGET verdict (sorted by scope). Targets are never
    downgraded.
    """
    target_by_scope: dict[str, InstalledPackage] = {}
    for pkg in target_packages:
        target_by_scope[pkg.scope] = pkg

    source_scopes = {item.scope for item in source_items}
    verdicts: list[Verdict] = []

    for item in source_items:
        target = target_by_scope.get(item.scope)
        if target is None:
            verdicts.append(Verdict(scope=item.scope, kind=VerdictKind.SKIP_NOT_INSTALLED, item=item))
            continue

        cmp = compare_versions(target.version, item.target_version)
        if cmp == 0:
            kind = VerdictKind.SKIP_ALREADY_CURRENT
            mismatch = False
        elif cmp < 0:
            kind = VerdictKind.INCLUDE
            mismatch = compare_versions(target.version, item.current_version) != 0
        else:
            kind = VerdictKind.SKIP_TARGET_AHEAD
            mismatch = False

        verdicts.append(
            Verdict(
                scope=item.scope,
                kind=kind,
                item=item,
                observed_version=target.version,
                version_mismatch=mismatch,
                target=target,
            )
        )

    for scope in sorted(set(target_by_scope) - source_scopes):
        target = target_by_scope[scope]
        verdicts.append(
            Verdict(
                scope=scope,
                kind=VerdictKind.EXTRA_ON_TARGET,
                observed_version=target.version,
                target=target,
            )
        )

    return verdicts


def summarize(verdicts: Iterable[Verdict]) -> dict[str, int]:
    """Count verdicts per kind, plus version mismatches."""
    summary = {kind.value: 0 for kind in VerdictKind}
    summary["version-mismatch"] = 0
    for verdict in verdicts:
        summary[verdict.kind.value] += 1
        if verdict.version_mismatch:
            summary["version-mismatch"] += 1
    return summary


def rebase_item(verdict: Verdict) -> PackageItem:
    """
    Source item adjusted to the target: starts from the observed version and
    uses the target's record id.
    """
    if verdict.item is None:
        raise ValueError(f"Verdict for {verdict.scope} has no source item")
    item = verdict.item
    target = verdict.target
    return replace(
        item,
        current_version=verdict.observed_version or item.current_version,
        source_ref=(target.source_ref if target and target.source_ref else item.source_ref),
    )


def derive_plan(
    verdicts: Iterable[Verdict],
    *,
    source_ref: str,
    source_version_label: str = "Unknown",
    profile: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> ExecutionPlan:
    """New plan for the target built from the INCLUDE verdicts."""
    items = [rebase_item(v) for v in verdicts if v.kind is VerdictKind.INCLUDE]
    return build_plan(
        items,
        source_ref=source_ref,
        source_version_label=source_version_label,
        profile=profile,
        created_at=created_at,
    )
