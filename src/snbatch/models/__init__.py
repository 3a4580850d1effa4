"""Public model exports for snbatch."""

from __future__ import annotations

from .job import JobHandle, RollbackCredential, digest_token
from .package import InstalledPackage, PackageItem, PackageKind
from .results import (
    InstallOutcome,
    InstallResult,
    ItemResult,
    ItemStatus,
    RollbackOutcome,
    RollbackResult,
    aggregate_outcome,
)
from .snapshot import JobStatus, PollSnapshot, normalize_snapshot, normalize_status

__all__ = [
    "PackageItem",
    "PackageKind",
    "InstalledPackage",
    "JobHandle",
    "RollbackCredential",
    "digest_token",
    "JobStatus",
    "PollSnapshot",
    "normalize_snapshot",
    "normalize_status",
    "ItemStatus",
    "ItemResult",
    "InstallResult",
    "InstallOutcome",
    "RollbackOutcome",
    "RollbackResult",
    "aggregate_outcome",
]
