"""Public error exports for snbatch."""

from __future__ import annotations

from .exceptions import (
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

__all__ = [
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
