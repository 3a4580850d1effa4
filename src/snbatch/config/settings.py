"""
Layered settings resolution.

Precedence (lowest first): defaults, ~/.snbatch/config.json, the nearest
.snbatchrc walking up from the working directory (not above home), SNBATCH_*
environment variables, explicit overrides.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .paths import CONFIG_PATH, HOME_DIR, PROJECT_RC_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Settings:
    """Durations are seconds."""

    poll_interval: float = 10.0
    sequential_poll_interval: float = 5.0
    max_poll_duration: float = 7200.0
    retries: int = 3
    backoff_base: float = 2.0
    stop_on_error: bool = False
    exclude_always: tuple[str, ...] = ()


_ENV_KEYS: dict[str, str] = {
    "SNBATCH_POLL_INTERVAL": "poll_interval",
    "SNBATCH_RETRIES": "retries",
    "SNBATCH_MAX_POLL_DURATION": "max_poll_duration",
}

_FIELD_TYPES: dict[str, type] = {
    "poll_interval": float,
    "sequential_poll_interval": float,
    "max_poll_duration": float,
    "retries": int,
    "backoff_base": float,
    "stop_on_error": bool,
}


def _read_json(path: str) -> Optional[dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def find_project_rc(start_dir: str, home_dir: str = HOME_DIR) -> Optional[dict[str, Any]]:
    """Nearest readable .snbatchrc from start_dir upwards, stopping at home."""
    current = os.path.abspath(start_dir)
    home = os.path.abspath(home_dir)
    while True:
        data = _read_json(os.path.join(current, PROJECT_RC_NAME))
        if data is not None:
            return data
        parent = os.path.dirname(current)
        if parent == current or current == home:
            return None
        current = parent


def _coerce(name: str, value: Any) -> Any:
    kind = _FIELD_TYPES[name]
    if kind is bool:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)
    return kind(value)


def _apply(values: dict[str, Any], layer: Mapping[str, Any], origin: str) -> None:
    for name, raw in layer.items():
        if name not in _FIELD_TYPES or raw is None:
            continue
        try:
            values[name] = _coerce(name, raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid %s=%r from %s", name, raw, origin)


def _layer_body(data: Optional[dict[str, Any]]) -> dict[str, Any]:
    if not data:
        return {}
    body = data.get("defaults")
    return body if isinstance(body, dict) else data


def _excludes(data: Optional[dict[str, Any]]) -> list[str]:
    if not data:
        return []
    raw = data.get("exclude_always")
    return [s for s in raw if isinstance(s, str)] if isinstance(raw, list) else []


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    config_path: str = CONFIG_PATH,
    home_dir: str = HOME_DIR,
) -> Settings:
    """Merge every layer into a frozen Settings."""
    environ = os.environ if env is None else env
    global_cfg = _read_json(config_path)
    project_rc = find_project_rc(cwd or os.getcwd(), home_dir=home_dir)

    values: dict[str, Any] = {}
    _apply(values, _layer_body(global_cfg), config_path)
    _apply(values, _layer_body(project_rc), PROJECT_RC_NAME)
    _apply(
        values,
        {name: environ[key] for key, name in _ENV_KEYS.items() if environ.get(key)},
        "environment",
    )
    overrides = dict(overrides or {})
    _apply(values, overrides, "overrides")

    excludes: list[str] = []
    for scope in (
        _excludes(global_cfg)
        + _excludes(project_rc)
        + list(overrides.get("exclude_always") or [])
    ):
        if scope not in excludes:
            excludes.append(scope)

    return replace(Settings(), exclude_always=tuple(excludes), **values)

