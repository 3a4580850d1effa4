"""Public plan exports for snbatch."""

from __future__ import annotations

from .execution_plan import (
    PLAN_FORMAT_VERSION,
    ExecutionPlan,
    PlanMetadata,
    build_plan,
    compute_stats,
)
from .reconcile import Verdict, VerdictKind, derive_plan, rebase_item, reconcile, summarize
from .serialization import (
    default_plan_name,
    dumps_plan,
    load_plan,
    plan_from_dict,
    plan_to_dict,
    save_plan,
    validate_plan_dict,
)

__all__ = [
    "PLAN_FORMAT_VERSION",
    "ExecutionPlan",
    "PlanMetadata",
    "build_plan",
    "compute_stats",
    "Verdict",
    "VerdictKind",
    "reconcile",
    "summarize",
    "rebase_item",
    "derive_plan",
    "plan_to_dict",
    "plan_from_dict",
    "dumps_plan",
    "save_plan",
    "load_plan",
    "validate_plan_dict",
    "default_plan_name",
]
