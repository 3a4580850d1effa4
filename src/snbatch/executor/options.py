"""Install run options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from snbatch.models import PackageItem


class InstallMode(str, Enum):
    """How items are submitted. Always chosen explicitly by the caller."""

    SEQUENTIAL = "sequential"
    BATCH = "batch"


class FailurePolicy(str, Enum):
    """What a sequential run does after an item fails."""

    HALT = "halt"
    CONTINUE = "continue"
    ASK = "ask"


# (failed item, number of items still pending) -> continue?
ContinuePrompt = Callable[[PackageItem, int], bool]


@dataclass(frozen=True)
class InstallOptions:
    """
    Options for one install run.

    Attributes:
        mode: sequential (one job per item) or batch (one job for all).
        on_failure: explicit policy; None derives it from context (see
            `resolve_failure_policy`).
        interactive: whether a human can be asked to continue.
        confirm_continue: injected prompt used when the policy is ASK.
        concurrency: accepted for compatibility; values other than 1 are
            downgraded to 1.
        poll_interval: seconds; None uses the configured interval for the mode.
        batch_name: optional label for batch submissions.
    """

    mode: InstallMode = InstallMode.SEQUENTIAL
    on_failure: Optional[FailurePolicy] = None
    interactive: bool = False
    confirm_continue: Optional[ContinuePrompt] = None
    concurrency: int = 1
    poll_interval: Optional[float] = None
    batch_name: Optional[str] = None

    def resolve_failure_policy(self, *, stop_on_error: bool = False) -> FailurePolicy:
        """
        Effective policy.

        Explicit `on_failure` wins (ASK without a prompt halts). Otherwise:
        configured stop-on-error or a non-interactive context halts; an
        interactive context with a prompt asks.
        """
        if self.on_failure is not None:
            if self.on_failure is FailurePolicy.ASK and self.confirm_continue is None:
                return FailurePolicy.HALT
            return self.on_failure
        if stop_on_error or not self.interactive or self.confirm_continue is None:
            return FailurePolicy.HALT
        return FailurePolicy.ASK
