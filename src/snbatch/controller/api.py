"""ServiceNow CI/CD and Table API controller (internal use only)."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence, TypeVar

import requests

from snbatch.auth import DEFAULT_TIMEOUT_SEC, InstanceAuth, build_session
from snbatch.errors import (
    ApiError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    SnBatchError,
    map_http_error,
)
from snbatch.models import InstalledPackage, JobHandle, PackageKind, RollbackCredential
from snbatch.models.job import reveal
from snbatch.util.log import redact

from .endpoints import (
    BATCH_INSTALL_PATH,
    BATCH_RESULTS_PATH,
    BATCH_ROLLBACK_PATH,
    BUILD_NAME_PROPERTY,
    CICD_CREDENTIAL_ALIAS,
    PLUGIN_FIELDS,
    PROGRESS_PATH,
    SINGLE_INSTALL_PATH,
    SINGLE_ROLLBACK_PATH,
    STORE_APP_FIELDS,
    TABLE_PAGE_LIMIT,
    TABLE_PATH,
)
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CicdController:
    """
    Instance API controller (internal only).

    Notes:
        - The `requests.Session` is NOT exposed.
        - Every call except `poll_status` goes through the RetryPolicy;
          polling applies its own fault handling.
    """

    def __init__(
        self,
        auth: InstanceAuth,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self._base_url = auth.base_url
        self._instance_host = auth.instance_host
        self._username: Optional[str] = auth.username
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout = timeout
        self._session = build_session(auth)

    @classmethod
    def from_session(
        cls,
        session: Any,
        base_url: str,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        username: Optional[str] = None,
    ) -> "CicdController":
        """Create controller from a pre-built session (useful for tests)."""
        obj = cls.__new__(cls)
        obj._base_url = base_url.rstrip("/")
        obj._instance_host = base_url.split("://", 1)[-1].rstrip("/")
        obj._username = username
        obj._retry_policy = retry_policy or RetryPolicy()
        obj._timeout = timeout
        obj._session = session
        return obj

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def instance_host(self) -> str:
        return self._instance_host

    @property
    def username(self) -> Optional[str]:
        return self._username

    # ----------------------------
    # CI/CD API
    # ----------------------------
    def submit_single_install(
        self,
        scope: str,
        version: str,
        *,
        load_demo_data: bool = False,
    ) -> JobHandle:
        _require(scope, "scope")
        _require(version, "version")
        params: dict[str, Any] = {"scope": scope, "version": version}
        if load_demo_data:
            params["load_demo_data"] = "true"

        result = self._execute(
            lambda: self._request("POST", SINGLE_INSTALL_PATH, params=params)
        )
        rollback_version = result.get("rollback_version")
        return JobHandle(
            job_id=_progress_id(result),
            rollback_version=rollback_version if isinstance(rollback_version, str) else None,
        )

    def submit_single_rollback(self, scope: str, version: str) -> JobHandle:
        _require(scope, "scope")
        _require(version, "version")
        params = {"scope": scope, "version": version}
        result = self._execute(
            lambda: self._request("POST", SINGLE_ROLLBACK_PATH, params=params)
        )
        return JobHandle(job_id=_progress_id(result))

    def submit_batch_install(
        self,
        payloads: Sequence[dict[str, Any]],
        *,
        name: Optional[str] = None,
    ) -> JobHandle:
        if not payloads:
            raise InvalidArgumentError("Batch install requires at least one package")

        body: dict[str, Any] = {"packages": list(payloads)}
        if name:
            body["name"] = name

        result = self._execute(
            lambda: self._request("POST", BATCH_INSTALL_PATH, json_body=body)
        )
        links = result.get("links") or {}
        token = _link_id(links, "rollback") or result.get("rollback_token")
        return JobHandle(
            job_id=_progress_id(result),
            rollback=RollbackCredential(token) if isinstance(token, str) and token else None,
            results_ref=_link_id(links, "results") or result.get("results_id"),
        )

    def submit_batch_rollback(self, credential: RollbackCredential) -> JobHandle:
        body = {"rollback_token": reveal(credential)}
        result = self._execute(
            lambda: self._request("POST", BATCH_ROLLBACK_PATH, json_body=body)
        )
        return JobHandle(job_id=_progress_id(result))

    def fetch_batch_results(self, results_ref: str) -> list[dict[str, Any]]:
        _require(results_ref, "results_ref")
        path = BATCH_RESULTS_PATH.format(results_id=results_ref)
        result = self._execute(lambda: self._request("GET", path))
        return _extract_result_rows(result)

    def poll_status(self, job_id: str) -> dict[str, Any]:
        """Single unretried status check."""
        path = PROGRESS_PATH.format(progress_id=job_id)
        result = self._request("GET", path)
        if not isinstance(result, dict):
            raise ApiError("Unexpected progress payload", details={"job_id": job_id})
        return result

    # ----------------------------
    # Table API (discovery)
    # ----------------------------
    def fetch_updatable_apps(self) -> list[InstalledPackage]:
        rows = self._table_rows(
            "sys_store_app",
            fields=STORE_APP_FIELDS,
            query="active=true^update_available=true",
        )
        return [_store_app_to_package(r) for r in rows]

    def fetch_installed_apps(self) -> list[InstalledPackage]:
        rows = self._table_rows(
            "sys_store_app",
            fields=STORE_APP_FIELDS,
            query="active=true",
        )
        return [_store_app_to_package(r) for r in rows]

    def fetch_plugins(self) -> list[InstalledPackage]:
        rows = self._table_rows("sys_plugins", fields=PLUGIN_FIELDS, query="active=active")
        return [_plugin_to_package(r) for r in rows if r.get("id")]

    def fetch_instance_version(self) -> str:
        """Build name of the instance; "Unknown" when it cannot be read."""
        try:
            rows = self._table_rows(
                "sys_properties",
                fields="value",
                query=f"name={BUILD_NAME_PROPERTY}",
                limit=1,
            )
        except SnBatchError as exc:
            logger.debug("Instance version lookup failed: %s", exc)
            return "Unknown"
        if rows and isinstance(rows[0].get("value"), str) and rows[0]["value"]:
            return rows[0]["value"]
        return "Unknown"

    def check_cicd_credential_alias(self) -> bool:
        """
        True if the CI/CD credential alias exists and has a credential bound.

        When the alias table is not readable the check is skipped (True);
        without the alias, single-app installs stay pending forever.
        """
        try:
            rows = self._table_rows(
                "sys_alias",
                fields="sys_id,configuration",
                query=f"id={CICD_CREDENTIAL_ALIAS}",
                limit=1,
            )
        except SnBatchError as exc:
            logger.debug("Credential alias check skipped: %s", exc)
            return True
        return bool(rows) and alias_has_credential(rows[0])

    def query_table(
        self,
        table: str,
        *,
        fields: str,
        query: str = "",
        limit: int = 1,
    ) -> list[dict[str, Any]]:
        """Rows of a Table API query; limits below the page size fetch a single page."""
        _require(table, "table")
        return self._table_rows(table, fields=fields, query=query, limit=limit)

    # ----------------------------
    # Internals
    # ----------------------------
    def _table_rows(
        self,
        table: str,
        *,
        fields: str,
        query: str,
        limit: int = TABLE_PAGE_LIMIT,
    ) -> list[dict[str, Any]]:
        path = TABLE_PATH.format(table=table)
        rows: list[dict[str, Any]] = []
        offset = 0

        while True:
            params = {
                "sysparm_fields": fields,
                "sysparm_query": query,
                "sysparm_limit": limit,
                "sysparm_offset": offset,
            }
            result = self._execute(lambda: self._request("GET", path, params=params))
            page = [r for r in (result if isinstance(result, list) else []) if isinstance(r, dict)]
            rows.extend(page)

            if len(page) < limit or limit < TABLE_PAGE_LIMIT:
                break
            offset += limit

        return rows

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except Exception as exc:
            raise self._map_exception(exc) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ApiError(
                "Response is not valid JSON",
                details={"path": path, "status_code": resp.status_code},
                cause=exc,
            ) from exc

        logger.debug("%s %s -> %s", method, path, redact(data))
        if isinstance(data, dict) and "result" in data:
            return data["result"]
        return data

    def _execute(self, func: Callable[[], T]) -> T:
        return self._retry_policy.call(func)

    def _map_exception(self, exc: Exception) -> Exception:
        if isinstance(exc, requests.HTTPError) and exc.response is not None:
            info = _http_error_to_info(exc.response)
            return map_http_error(info, cause=exc)

        if isinstance(exc, (requests.ConnectionError, requests.Timeout, OSError, TimeoutError)):
            return NetworkError(f"Network error talking to {self._instance_host}", cause=exc)

        return ApiError("Instance API error", cause=exc)


def _require(value: object, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"Missing required argument: {field_name}")


def alias_has_credential(row: dict[str, Any]) -> bool:
    """True if a sys_alias row has a credential configuration bound."""
    configuration = row.get("configuration")
    if isinstance(configuration, dict):
        configuration = configuration.get("value")
    return bool(configuration) and configuration != "null"


def _link_id(links: Any, name: str) -> Optional[str]:
    if not isinstance(links, dict):
        return None
    link = links.get(name)
    if isinstance(link, dict) and isinstance(link.get("id"), str) and link["id"]:
        return link["id"]
    return None


def _progress_id(result: Any) -> str:
    if not isinstance(result, dict):
        raise ApiError("Unexpected submission response: not an object")
    job_id = _link_id(result.get("links"), "progress") or result.get("id")
    if not isinstance(job_id, str) or not job_id:
        raise ApiError(
            "Submission response has no progress id",
            details={"response": redact(result)},
        )
    return job_id


def _extract_result_rows(result: Any) -> list[dict[str, Any]]:
    if isinstance(result, list):
        rows = result
    elif isinstance(result, dict):
        rows = []
        for key in ("batch_items", "packages", "results"):
            if isinstance(result.get(key), list):
                rows = result[key]
                break
    else:
        rows = []
    return [r for r in rows if isinstance(r, dict)]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def _store_app_to_package(row: dict[str, Any]) -> InstalledPackage:
    version = row.get("version") or ""
    latest = row.get("latest_version") or version
    return InstalledPackage(
        scope=row.get("scope") or "",
        name=row.get("name") or "",
        version=version,
        kind=PackageKind.APPLICATION,
        source_ref=row.get("sys_id") or None,
        latest_version=latest,
        has_demo_data=_as_bool(row.get("demo_data")),
    )


def _plugin_to_package(row: dict[str, Any]) -> InstalledPackage:
    version = row.get("version") or ""
    return InstalledPackage(
        scope=row["id"],
        name=row.get("name") or row["id"],
        version=version,
        kind=PackageKind.PLUGIN,
        source_ref=row.get("sys_id") or row["id"],
        latest_version=version,
    )


def _http_error_to_info(resp: Any) -> HttpErrorInfo:
    status_code = getattr(resp, "status_code", None)
    reason = getattr(resp, "reason", None)
    headers = getattr(resp, "headers", None) or {}
    retry_after = headers.get("Retry-After") if hasattr(headers, "get") else None

    message = None
    details: dict[str, Any] = {}

    try:
        payload = resp.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            message = err.get("message") or None
            if err.get("detail"):
                details["detail"] = err["detail"]
        elif isinstance(err, str) and err:
            message = err

    if message and details.get("detail"):
        message = f"{message}: {details['detail']}"

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        retry_after=str(retry_after) if retry_after is not None else None,
        details=details or None,
    )
