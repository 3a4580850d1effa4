"""Install executor exports for snbatch."""

from __future__ import annotations

from .install_executor import InstallExecutor
from .options import ContinuePrompt, FailurePolicy, InstallMode, InstallOptions
from .rollback import RollbackRunner
from .strategies import (
    BatchStrategy,
    InstallStrategy,
    JobDriver,
    PollSettings,
    SequentialStrategy,
    is_fatal,
)

__all__ = [
    "InstallExecutor",
    "InstallOptions",
    "InstallMode",
    "FailurePolicy",
    "ContinuePrompt",
    "InstallStrategy",
    "JobDriver",
    "SequentialStrategy",
    "BatchStrategy",
    "PollSettings",
    "RollbackRunner",
    "is_fatal",
]
