"""snbatch public API."""

from __future__ import annotations

from snbatch._version import __version__
from snbatch.auth import InstanceAuth
from snbatch.config import Settings, load_settings
from snbatch.confirmations import (
    ConfirmationStore,
    requires_typed_confirmation,
    validate_typed_confirmation,
)
from snbatch.controller import CicdController, RetryPolicy, poll_job
from snbatch.errors import (
    ApiError,
    AuthError,
    ConflictError,
    ForbiddenError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PlanValidationError,
    PollTimeoutError,
    RateLimitError,
    SnBatchError,
    map_http_error,
)
from snbatch.executor import (
    FailurePolicy,
    InstallExecutor,
    InstallMode,
    InstallOptions,
    RollbackRunner,
)
from snbatch.history import HistoryStore
from snbatch.manager import UpgradeManager
from snbatch.models import (
    InstalledPackage,
    InstallOutcome,
    InstallResult,
    ItemResult,
    JobHandle,
    JobStatus,
    PackageItem,
    PackageKind,
    PollSnapshot,
    RollbackCredential,
    RollbackResult,
)
from snbatch.plan import (
    ExecutionPlan,
    Verdict,
    VerdictKind,
    build_plan,
    derive_plan,
    load_plan,
    reconcile,
    save_plan,
)
from snbatch.prerequisites import CheckResult, run_prerequisite_checks
from snbatch.util.version import UpgradeType, compare_versions, upgrade_type

__all__ = [
    "__version__",
    # High-level
    "UpgradeManager",
    "InstallExecutor",
    "RollbackRunner",
    "CicdController",
    "RetryPolicy",
    "poll_job",
    # Auth / config
    "InstanceAuth",
    "Settings",
    "load_settings",
    "HistoryStore",
    "ConfirmationStore",
    "requires_typed_confirmation",
    "validate_typed_confirmation",
    "CheckResult",
    "run_prerequisite_checks",
    # Plan / Models
    "ExecutionPlan",
    "build_plan",
    "load_plan",
    "save_plan",
    "reconcile",
    "derive_plan",
    "Verdict",
    "VerdictKind",
    "PackageItem",
    "PackageKind",
    "InstalledPackage",
    "UpgradeType",
    "upgrade_type",
    "compare_versions",
    "InstallOptions",
    "InstallMode",
    "FailurePolicy",
    "InstallResult",
    "InstallOutcome",
    "ItemResult",
    "RollbackResult",
    "RollbackCredential",
    "JobHandle",
    "JobStatus",
    "PollSnapshot",
    # Errors
    "SnBatchError",
    "InvalidStateError",
    "AuthError",
    "ForbiddenError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "NetworkError",
    "ApiError",
    "PlanValidationError",
    "PollTimeoutError",
    "HttpErrorInfo",
    "map_http_error",
]
