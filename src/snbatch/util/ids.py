"""Identifiers for history entries and confirmation challenges."""

from __future__ import annotations

import uuid


def new_uuid() -> str:
    return str(uuid.uuid4())


def new_history_id() -> str:
    """History entry id; `HistoryStore.find_by_id` also matches by prefix."""
    return new_uuid()


def new_confirmation_token() -> str:
    """Single-use confirmation token, 32 hex chars."""
    return uuid.uuid4().hex
