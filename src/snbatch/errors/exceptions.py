"""Exception hierarchy and HTTP error mapping for snbatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class SnBatchError(Exception):
    """
    Base exception for snbatch.

    Attributes:
        details: Optional structured information (e.g., HTTP status, remote detail).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(SnBatchError):
    """Raised when the library is used in an invalid state (e.g., a closed job handle)."""


class AuthError(SnBatchError):
    """Raised when the instance rejects the credentials (HTTP 401)."""


class ForbiddenError(SnBatchError):
    """Raised when access is denied (HTTP 403), e.g. missing CI/CD role."""


class InvalidArgumentError(SnBatchError):
    """Raised when request arguments are invalid (HTTP 400, etc.)."""


class NotFoundError(SnBatchError):
    """Raised when a remote resource is not found (HTTP 404)."""


class ConflictError(SnBatchError):
    """Raised when the instance reports a conflict (HTTP 409)."""


class RateLimitError(SnBatchError):
    """Raised when rate-limited (HTTP 429). `details["retry_after"]` keeps the raw hint."""


class NetworkError(SnBatchError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(SnBatchError):
    """Raised for unclassified API errors (5xx, unknown 4xx, malformed responses)."""


class PlanValidationError(SnBatchError):
    """Raised when a persisted plan fails validation. Carries every violation found."""

    def __init__(
        self,
        violations: list[str],
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.violations = list(violations)
        message = "Invalid plan: " + "; ".join(self.violations)
        super().__init__(message, details=details, cause=cause)


class PollTimeoutError(SnBatchError):
    """
    Raised when a polled job does not reach a terminal state before the deadline.

    The job executes server-side independently of the poll loop, so it may
    still be running (and may still fail) unattended.
    """


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to snbatch exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    retry_after: str | None = None
    details: dict[str, Any] | None = None


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> SnBatchError:
    """
    Map an HTTP error to a snbatch exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> ForbiddenError
        - 404 -> NotFoundError
        - 409 -> ConflictError
        - 429 -> RateLimitError (retry_after kept in details)
        - 5xx -> ApiError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        return ForbiddenError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code == 409:
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        details["retry_after"] = info.retry_after
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)

