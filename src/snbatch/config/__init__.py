"""Configuration exports for snbatch."""

from __future__ import annotations

from .paths import CONFIG_PATH, HISTORY_PATH, SNBATCH_DIR
from .settings import Settings, find_project_rc, load_settings

__all__ = [
    "Settings",
    "load_settings",
    "find_project_rc",
    "CONFIG_PATH",
    "HISTORY_PATH",
    "SNBATCH_DIR",
]
