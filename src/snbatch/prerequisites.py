"""Instance prerequisite checks for CI/CD installs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from snbatch.controller.api import alias_has_credential
from snbatch.controller.endpoints import BUILD_NAME_PROPERTY, CICD_CREDENTIAL_ALIAS
from snbatch.errors import AuthError, SnBatchError

logger = logging.getLogger(__name__)

CICD_PLUGINS: tuple[tuple[str, str], ...] = (
    ("com.glide.continuousdelivery", "CI/CD REST API"),
)
APPREPO_INSTALL_PROPERTY: str = "sn_cicd.apprepo.install.enabled"
REQUIRED_ROLE: str = "sn_cicd.sys_ci_automation"
WS_TABLES: tuple[str, ...] = (
    "sys_store_app",
    "sys_app_version",
    "sys_plugins",
    "sys_properties",
)
# Broad read surface; web-service access there is enabled by hand only.
WS_MANUAL_ONLY: frozenset[str] = frozenset({"sys_properties"})


class TableSource(Protocol):
    def query_table(
        self,
        table: str,
        *,
        fields: str,
        query: str = "",
        limit: int = 1,
    ) -> list[dict[str, Any]]: ...


@dataclass(frozen=True, slots=True)
class CheckResult:
    """
    Outcome of one prerequisite check.

    `fixable` marks problems an administrator account could correct through
    the Table API; `manual_setup` marks ones that need the instance UI.
    """

    name: str
    passed: bool
    detail: str
    fixable: bool = False
    manual_setup: bool = False


def _first_row(source: TableSource, table: str, fields: str, query: str) -> Optional[dict[str, Any]]:
    rows = source.query_table(table, fields=fields, query=query, limit=1)
    return rows[0] if rows else None


def _is_true(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def _run(name: str, check: Callable[[], CheckResult]) -> CheckResult:
    try:
        return check()
    except SnBatchError as exc:
        logger.debug("Check %r failed: %s", name, exc)
        return CheckResult(name=name, passed=False, detail=str(exc))


def check_connectivity(source: TableSource) -> CheckResult:
    source.query_table("sys_properties", fields="sys_id", limit=1)
    return CheckResult(name="Connectivity", passed=True, detail="Instance reachable")


def check_instance_version(source: TableSource) -> CheckResult:
    row = _first_row(source, "sys_properties", "value", f"name={BUILD_NAME_PROPERTY}")
    version = row.get("value") if row else None
    return CheckResult(
        name="Instance version",
        passed=True,
        detail=version if isinstance(version, str) and version else "Unknown",
    )


def check_plugin(source: TableSource, plugin_id: str, label: str) -> CheckResult:
    row = _first_row(source, "sys_plugins", "id,active", f"id={plugin_id}")
    if row is None:
        return CheckResult(name=label, passed=False, detail=f"{plugin_id} not found")
    if _is_true(row.get("active")) or row.get("active") == "active":
        return CheckResult(name=label, passed=True, detail=f"{plugin_id} active")
    return CheckResult(name=label, passed=False, detail=f"{plugin_id} inactive; activate it under Plugins")


def check_apprepo_install(source: TableSource) -> CheckResult:
    name = "App Repo Install API"
    row = _first_row(source, "sys_properties", "sys_id,value", f"name={APPREPO_INSTALL_PROPERTY}")
    if row is None:
        return CheckResult(
            name=name, passed=False, detail=f"{APPREPO_INSTALL_PROPERTY} property not found", fixable=True
        )
    if _is_true(row.get("value")):
        return CheckResult(name=name, passed=True, detail="App repo install API enabled")
    return CheckResult(name=name, passed=False, detail=f"{APPREPO_INSTALL_PROPERTY} is false", fixable=True)


def check_credential_alias(source: TableSource) -> CheckResult:
    name = "CI/CD Credential Alias"
    row = _first_row(source, "sys_alias", "sys_id,id,name,configuration", f"id={CICD_CREDENTIAL_ALIAS}")
    if row is None:
        return CheckResult(
            name=name,
            passed=False,
            detail=f"{CICD_CREDENTIAL_ALIAS} alias not found. Is the CI/CD Spoke activated?",
            manual_setup=True,
        )
    if not alias_has_credential(row):
        return CheckResult(
            name=name,
            passed=False,
            detail=f"{CICD_CREDENTIAL_ALIAS} has no credential bound",
            manual_setup=True,
        )
    return CheckResult(name=name, passed=True, detail="CI/CD credential alias configured")


def check_role(source: TableSource, username: Optional[str]) -> CheckResult:
    name = "CI/CD Role"
    if not username:
        return CheckResult(name=name, passed=False, detail="Username unknown; cannot check roles")
    rows = source.query_table(
        "sys_user_has_role",
        fields="role",
        query=f"user.user_name={username}^role.name={REQUIRED_ROLE}",
        limit=1,
    )
    if rows:
        return CheckResult(name=name, passed=True, detail=f"User has {REQUIRED_ROLE}")
    return CheckResult(name=name, passed=False, detail=f"User missing {REQUIRED_ROLE}", fixable=True)


def check_ws_access(source: TableSource, table: str) -> CheckResult:
    name = f"Web Service Access ({table})"
    row = _first_row(source, "sys_db_object", "sys_id,name,ws_access", f"name={table}")
    if row is None:
        return CheckResult(name=name, passed=False, detail=f"{table}: table not found")
    if _is_true(row.get("ws_access")):
        return CheckResult(name=name, passed=True, detail=f"{table}: ws_access enabled")
    if table in WS_MANUAL_ONLY:
        return CheckResult(
            name=name,
            passed=False,
            detail=f"{table}: ws_access disabled (enable manually, sensitive table)",
            manual_setup=True,
        )
    return CheckResult(name=name, passed=False, detail=f"{table}: ws_access disabled", fixable=True)


def run_prerequisite_checks(source: TableSource, username: Optional[str]) -> list[CheckResult]:
    """
    Check everything CI/CD installs depend on.

    Connectivity comes first; when the instance cannot be reached (or the
    credentials are rejected) the remaining checks are not attempted. Every
    later check records its own failure and never stops the run.
    """
    try:
        connectivity = check_connectivity(source)
    except AuthError as exc:
        return [
            CheckResult(name="Connectivity", passed=True, detail="Instance reachable"),
            CheckResult(name="Authentication", passed=False, detail=str(exc)),
        ]
    except SnBatchError as exc:
        return [CheckResult(name="Connectivity", passed=False, detail=str(exc))]

    results = [
        connectivity,
        CheckResult(name="Authentication", passed=True, detail=f"Logged in as: {username or 'unknown'}"),
        _run("Instance version", lambda: check_instance_version(source)),
    ]
    results.extend(
        _run(label, lambda pid=plugin_id, lbl=label: check_plugin(source, pid, lbl))
        for plugin_id, label in CICD_PLUGINS
    )
    results.append(_run("App Repo Install API", lambda: check_apprepo_install(source)))
    results.append(_run("CI/CD Credential Alias", lambda: check_credential_alias(source)))
    results.append(_run("CI/CD Role", lambda: check_role(source, username)))
    results.extend(
        _run(f"Web Service Access ({table})", lambda t=table: check_ws_access(source, t))
        for table in WS_TABLES
    )
    return results
