"""Plan persistence: versioned JSON with aggregated validation."""

from __future__ import annotations

import json
import os
from typing import Any

from snbatch.errors import PlanValidationError
from snbatch.models import PackageItem, PackageKind
from snbatch.util.time import file_timestamp, now_utc, parse_rfc3339, to_rfc3339
from snbatch.util.version import upgrade_type

from .execution_plan import PLAN_FORMAT_VERSION, ExecutionPlan, PlanMetadata

_REQUIRED_ITEM_FIELDS: tuple[str, ...] = (
    "scope",
    "sysId",
    "currentVersion",
    "targetVersion",
)
_OPTIONAL_STRING_FIELDS: tuple[str, ...] = ("name", "upgradeType", "packageType")


def item_to_dict(item: PackageItem) -> dict[str, Any]:
    data: dict[str, Any] = {
        "sysId": item.source_ref,
        "scope": item.scope,
        "name": item.name,
        "currentVersion": item.current_version,
        "targetVersion": item.target_version,
        "upgradeType": item.magnitude.value,
        "packageType": item.kind.value,
    }
    if item.has_demo_data:
        data["hasDemoData"] = True
    if item.load_demo_data:
        data["loadDemoData"] = True
    return data


def item_from_dict(data: dict[str, Any]) -> PackageItem:
    return PackageItem(
        scope=data["scope"],
        name=data.get("name") or data["scope"],
        current_version=str(data["currentVersion"]),
        target_version=str(data["targetVersion"]),
        kind=PackageKind.parse(data.get("packageType")),
        source_ref=data.get("sysId"),
        has_demo_data=bool(data.get("hasDemoData", False)),
        load_demo_data=bool(data.get("loadDemoData", False)),
    )


def plan_to_dict(plan: ExecutionPlan) -> dict[str, Any]:
    meta = plan.metadata
    return {
        "manifestVersion": plan.format_version,
        "metadata": {
            "createdAt": to_rfc3339(meta.created_at),
            "instance": meta.source_ref,
            "instanceVersion": meta.source_version_label,
            "profile": meta.profile,
            "snbatchVersion": meta.tool_version,
        },
        "packages": [item_to_dict(item) for item in plan.items],
        "stats": dict(plan.stats),
    }


def dumps_plan(plan: ExecutionPlan) -> str:
    """Serialize deterministically (scope-sorted items, fixed key order)."""
    return json.dumps(plan_to_dict(plan), indent=2, ensure_ascii=False) + "\n"


def validate_plan_dict(obj: Any) -> list[str]:
    """
    Return every violation found in a parsed plan document.

    An empty list means the document can be loaded.
    """
    if not isinstance(obj, dict):
        return ["Plan must be a JSON object"]

    errors: list[str] = []
    if obj.get("manifestVersion") != PLAN_FORMAT_VERSION:
        errors.append(
            f"Expected manifestVersion {PLAN_FORMAT_VERSION}, "
            f"got {obj.get('manifestVersion')!r}"
        )

    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        errors.append("metadata must be an object")
    else:
        instance = metadata.get("instance")
        if not instance:
            errors.append("metadata.instance is required")
        elif not isinstance(instance, str):
            errors.append("metadata.instance must be a string")
        created_at = metadata.get("createdAt")
        if created_at is not None:
            try:
                parse_rfc3339(created_at)
            except (TypeError, ValueError):
                errors.append(f"metadata.createdAt is not an RFC 3339 timestamp: {created_at!r}")

    packages = obj.get("packages")
    if not isinstance(packages, list):
        errors.append("packages must be an array")
        return errors

    seen: set[str] = set()
    for index, pkg in enumerate(packages):
        errors.extend(_validate_item(index, pkg, seen))

    return errors


def _validate_item(index: int, pkg: Any, seen: set[str]) -> list[str]:
    if not isinstance(pkg, dict):
        return [f"packages[{index}] must be an object"]

    scope = pkg.get("scope")
    label = scope if isinstance(scope, str) and scope else f"packages[{index}]"
    errors: list[str] = []
    for name in _REQUIRED_ITEM_FIELDS:
        value = pkg.get(name)
        if not _present(value):
            errors.append(f"Package {label} missing {name}")
        elif not isinstance(value, str):
            errors.append(f"Package {label} {name} must be a string, got {type(value).__name__}")
    for name in _OPTIONAL_STRING_FIELDS:
        value = pkg.get(name)
        if value is not None and not isinstance(value, str):
            errors.append(f"Package {label} {name} must be a string, got {type(value).__name__}")
    if isinstance(scope, str) and _present(scope):
        if scope in seen:
            errors.append(f"Duplicate scope: {scope}")
        seen.add(scope)

    recorded = pkg.get("upgradeType")
    current, target = pkg.get("currentVersion"), pkg.get("targetVersion")
    versions_ok = all(isinstance(v, str) and _present(v) for v in (current, target))
    if isinstance(recorded, str) and versions_ok:
        derived = upgrade_type(current, target).value
        if recorded != derived:
            errors.append(
                f"Package {label} upgradeType {recorded!r} does not match versions "
                f"({current} -> {target} is {derived!r})"
            )
    return errors


def _present(value: object) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


def plan_from_dict(obj: Any) -> ExecutionPlan:
    """
    Build a plan from a parsed document.

    Raises:
        PlanValidationError: listing every violation, not just the first.
    """
    errors = validate_plan_dict(obj)
    if errors:
        raise PlanValidationError(errors)

    meta = obj["metadata"]
    created_at = meta.get("createdAt")
    metadata = PlanMetadata(
        created_at=parse_rfc3339(created_at) if created_at else now_utc(),
        source_ref=meta["instance"],
        source_version_label=meta.get("instanceVersion") or "Unknown",
        profile=meta.get("profile"),
        tool_version=meta.get("snbatchVersion") or "unknown",
    )
    items = tuple(item_from_dict(pkg) for pkg in obj["packages"])
    return ExecutionPlan(
        metadata=metadata,
        items=items,
        format_version=obj["manifestVersion"],
    )


def save_plan(plan: ExecutionPlan, path: str) -> None:
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps_plan(plan))


def load_plan(path: str) -> ExecutionPlan:
    """
    Read and validate a plan file.

    Raises:
        PlanValidationError: unreadable JSON or any schema violation.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PlanValidationError(
            [f"Not valid JSON: {exc.msg} (line {exc.lineno})"],
            details={"path": path},
            cause=exc,
        ) from exc
    return plan_from_dict(obj)


def default_plan_name(instance_host: str) -> str:
    """e.g. snbatch-manifest-dev.service-now.com-2025-01-01_12-00-00.json"""
    safe = "".join(c if c.isalnum() or c in ".-" else "_" for c in instance_host)
    return f"snbatch-manifest-{safe}-{file_timestamp(now_utc())}.json"
