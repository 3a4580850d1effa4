"""Logging helpers: secret redaction for structured log payloads."""

from __future__ import annotations

import logging
import sys
from typing import Any

REDACTED = "[REDACTED]"

_SENSITIVE_KEY_PARTS: tuple[str, ...] = ("password", "token", "auth", "secret")


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


def redact(value: Any) -> Any:
    """
    Return a copy of `value` with every sensitive mapping key masked.

    Nested dicts and lists are walked; other values are returned as-is.
    """
    if isinstance(value, dict):
        return {
            k: (REDACTED if isinstance(k, str) and _is_sensitive(k) else redact(v))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


class RedactingFilter(logging.Filter):
    """Mask sensitive keys in dict-valued record args before formatting."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(redact(a) for a in record.args)
        return True


def configure_logging(level: int = logging.INFO) -> logging.Handler:
    """Attach a stderr handler with redaction to the `snbatch` logger."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    handler.addFilter(RedactingFilter())

    logger = logging.getLogger("snbatch")
    logger.setLevel(level)
    logger.addHandler(handler)
    return handler
