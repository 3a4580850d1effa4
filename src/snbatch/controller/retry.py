"""Retry policy for single remote calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from snbatch.errors import ApiError, NetworkError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_FALLBACK_SEC: float = 30.0
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({500, 502, 503, 504})


def parse_retry_after(value: Any) -> float:
    """
    Seconds to wait for a Retry-After hint.

    Only a positive integer number of seconds is honored. Anything else
    (missing, non-numeric, zero, negative, HTTP-date) falls back to
    RATE_LIMIT_FALLBACK_SEC.
    """
    if isinstance(value, bool):
        return RATE_LIMIT_FALLBACK_SEC
    if isinstance(value, str):
        value = value.strip()
        # isdigit() alone also accepts superscript and other non-ASCII digits.
        if not (value.isascii() and value.isdigit()):
            return RATE_LIMIT_FALLBACK_SEC
        seconds = int(value)
    elif isinstance(value, int):
        seconds = value
    else:
        return RATE_LIMIT_FALLBACK_SEC
    return float(seconds) if seconds > 0 else RATE_LIMIT_FALLBACK_SEC


def is_server_error(exc: BaseException) -> bool:
    if not isinstance(exc, ApiError):
        return False
    status_code = exc.details.get("status_code")
    return isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES


def is_transient(exc: BaseException) -> bool:
    """Server-error family or network failure. Rate limits are handled separately."""
    return isinstance(exc, NetworkError) or is_server_error(exc)


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitError) or is_transient(exc)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry a zero-argument remote call on transient failures.

    Attributes:
        max_retries: retries after the first attempt (N retries -> N + 1 calls).
        backoff_base: seconds; retry k waits backoff_base * 2 ** (k - 1).
        sleep: injectable for tests.
    """

    max_retries: int = 3
    backoff_base: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def wait_for(self, exc: BaseException, attempt: int) -> float:
        """Seconds to wait before retry number `attempt` (1-based)."""
        if isinstance(exc, RateLimitError):
            return parse_retry_after(exc.details.get("retry_after"))
        return self.backoff_base * (2 ** (attempt - 1))

    def call(self, func: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return func()
            except Exception as exc:
                if not is_retryable(exc) or attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = self.wait_for(exc, attempt)
                logger.info(
                    "Retrying after %s (attempt %d/%d, waiting %.1fs)",
                    exc.__class__.__name__,
                    attempt,
                    self.max_retries,
                    delay,
                )
                self.sleep(delay)
