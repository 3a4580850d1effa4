"""Typed confirmations for destructive operations."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from snbatch.util.ids import new_confirmation_token

DEFAULT_TTL_SEC: float = 5 * 60

_SCHEME_RE = re.compile(r"^https?://")


def requires_typed_confirmation(stats: Mapping[str, int]) -> bool:
    """A batch with any major upgrade needs the instance hostname typed back."""
    return stats.get("major", 0) > 0


def _normalize_host(value: str) -> str:
    value = _SCHEME_RE.sub("", value.strip().lower())
    return value[:-1] if value.endswith("/") else value


def validate_typed_confirmation(typed: str, expected: str) -> bool:
    """Case-insensitive; a leading http(s):// and a trailing slash are ignored."""
    return _normalize_host(typed) == _normalize_host(expected)


@dataclass(frozen=True)
class Challenge:
    token: str
    instance_host: str
    operation: str
    expires_at: float

    @property
    def message(self) -> str:
        return (
            f"This {self.operation} requires confirmation. "
            f"Type the instance hostname to proceed: {self.instance_host}"
        )


@dataclass(frozen=True)
class Verification:
    valid: bool
    error: Optional[str] = None


class ConfirmationStore:
    """
    Expiring, single-use confirmation challenges kept in memory.

    Used where a confirmation cannot be read from a terminal: the caller
    issues a challenge, relays it, and verifies the typed answer later.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._challenges: dict[str, Challenge] = {}

    def __len__(self) -> int:
        return len(self._challenges)

    def issue(self, instance_host: str, operation: str = "install") -> Challenge:
        self.sweep()
        challenge = Challenge(
            token=new_confirmation_token(),
            instance_host=instance_host,
            operation=operation,
            expires_at=self._clock() + self._ttl,
        )
        self._challenges[challenge.token] = challenge
        return challenge

    def verify(self, token: str, typed: str, operation: Optional[str] = None) -> Verification:
        """
        Check a typed answer against a challenge.

        Expired or wrong-operation tokens are consumed. A wrong hostname is
        not, so the user can retry with the same token.
        """
        challenge = self._challenges.get(token)
        if challenge is None:
            return Verification(False, "Confirmation token not found or already used")
        if self._clock() > challenge.expires_at:
            del self._challenges[token]
            return Verification(False, "Confirmation token has expired. Start the operation again.")
        if operation is not None and challenge.operation != operation:
            del self._challenges[token]
            return Verification(
                False,
                f'Confirmation token was issued for "{challenge.operation}", not "{operation}".',
            )
        if not validate_typed_confirmation(typed, challenge.instance_host):
            return Verification(
                False, f"Confirmation value does not match. Expected: {challenge.instance_host}"
            )
        del self._challenges[token]
        return Verification(True)

    def sweep(self) -> int:
        """Drop expired challenges; returns how many were removed."""
        now = self._clock()
        expired = [t for t, c in self._challenges.items() if now > c.expires_at]
        for token in expired:
            del self._challenges[token]
        return len(expired)
