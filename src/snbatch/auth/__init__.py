"""Public auth exports for snbatch."""

from __future__ import annotations

from .auth_info import InstanceAuth, normalize_instance_url
from .session import DEFAULT_TIMEOUT_SEC, build_session

__all__ = ["InstanceAuth", "normalize_instance_url", "build_session", "DEFAULT_TIMEOUT_SEC"]
