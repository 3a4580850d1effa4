"""Job handles and the opaque rollback credential."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Optional

from snbatch.errors import InvalidStateError

_HINT_LENGTH = 4


class RollbackCredential:
    """
    Opaque holder of a rollback token.

    Only a one-way digest and a short display hint can be computed from it.
    The raw value never appears in `repr`/`str` and is not a dataclass field,
    so it cannot leak through `asdict` or JSON serialization.
    """

    __slots__ = ("__value",)

    def __init__(self, value: str) -> None:
        if not isinstance(value, str) or not value:
            raise ValueError("rollback credential must be a non-empty string")
        self.__value = value

    def digest(self) -> str:
        """SHA-256 hex digest, for later equality checks."""
        return digest_token(self.__value)

    def hint(self) -> str:
        """Non-reversible display hint: the last few characters only."""
        return "..." + self.__value[-_HINT_LENGTH:]

    def matches(self, digest: str) -> bool:
        return self.digest() == digest

    def _reveal(self) -> str:
        return self.__value

    def __repr__(self) -> str:
        return f"RollbackCredential({self.hint()})"

    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RollbackCredential):
            return NotImplemented
        return self.digest() == other.digest()

    def __hash__(self) -> int:
        return hash(self.digest())


def digest_token(token: str) -> str:
    """SHA-256 hex digest of a raw rollback token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def reveal(credential: RollbackCredential) -> str:
    """Raw token, for the single rollback submission that consumes it."""
    return credential._reveal()


@dataclass(slots=True)
class JobHandle:
    """
    Handle for one submitted long-running remote operation.

    A handle is valid for exactly one operation: it is closed once its
    terminal snapshot has been observed.
    """

    job_id: str
    rollback: Optional[RollbackCredential] = None
    results_ref: Optional[str] = None
    rollback_version: Optional[str] = None
    closed: bool = field(default=False)

    def ensure_open(self) -> None:
        if self.closed:
            raise InvalidStateError(
                "Job handle already reached a terminal state",
                details={"job_id": self.job_id},
            )

    def close(self) -> None:
        self.closed = True
