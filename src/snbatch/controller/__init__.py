"""Internal controller exports for snbatch."""

from __future__ import annotations

from .api import CicdController
from .poller import DEFAULT_MAX_POLL_DURATION_SEC, last_snapshot, poll_job
from .retry import (
    RATE_LIMIT_FALLBACK_SEC,
    RetryPolicy,
    is_retryable,
    is_transient,
    parse_retry_after,
)

__all__ = [
    "CicdController",
    "RetryPolicy",
    "RATE_LIMIT_FALLBACK_SEC",
    "DEFAULT_MAX_POLL_DURATION_SEC",
    "is_retryable",
    "is_transient",
    "parse_retry_after",
    "poll_job",
    "last_snapshot",
]
