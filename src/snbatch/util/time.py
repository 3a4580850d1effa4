"""UTC timestamps for plan metadata, history entries and file names."""

from __future__ import annotations

from datetime import datetime, timezone

_FILE_FORMAT = "%Y-%m-%d_%H-%M-%S"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def require_aware(dt: datetime) -> datetime:
    """Return `dt` unchanged; naive datetimes are rejected."""
    if not isinstance(dt, datetime):
        raise TypeError(f"Expected a datetime, got {type(dt).__name__}")
    if dt.tzinfo is None:
        raise ValueError("Timestamps must be timezone-aware")
    return dt


def parse_rfc3339(value: str) -> datetime:
    """
    Parse a plan or history timestamp into a UTC datetime.

    Accepts a trailing 'Z' or an explicit offset; a value without any zone
    is rejected rather than guessed.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Timestamp must be a non-empty string")

    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Not an RFC 3339 timestamp: {value!r}") from exc
    return require_aware(parsed).astimezone(timezone.utc)


def to_rfc3339(dt: datetime) -> str:
    """Whole-second UTC with a 'Z' suffix, e.g. 2025-01-01T12:00:00Z."""
    utc = require_aware(dt).astimezone(timezone.utc).replace(microsecond=0)
    return utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def file_timestamp(dt: datetime) -> str:
    """e.g. 2025-01-01_12-34-56"""
    return require_aware(dt).astimezone(timezone.utc).strftime(_FILE_FORMAT)
