"""Filesystem locations used by snbatch."""

from __future__ import annotations

import os

HOME_DIR: str = os.path.expanduser("~")
SNBATCH_DIR: str = os.path.join(HOME_DIR, ".snbatch")
CONFIG_PATH: str = os.path.join(SNBATCH_DIR, "config.json")
HISTORY_PATH: str = os.path.join(SNBATCH_DIR, "history.json")
PROJECT_RC_NAME: str = ".snbatchrc"
