"""Operation history: one JSON object per line under ~/.snbatch."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Iterable, Optional, Union

from snbatch.config.paths import HISTORY_PATH
from snbatch.errors import InvalidArgumentError
from snbatch.models import InstallResult, PackageItem, RollbackCredential, RollbackResult, digest_token
from snbatch.util.ids import new_history_id
from snbatch.util.time import now_utc, to_rfc3339

logger = logging.getLogger(__name__)

_DIR_MODE = 0o700
_FILE_MODE = 0o600


class HistoryStore:
    """
    Append-only operation log.

    Entries never contain a raw rollback token, only its SHA-256 digest
    (`rollbackTokenHash`) and a display hint (`rollbackTokenHint`).
    """

    def __init__(self, path: str = HISTORY_PATH) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def append(self, entry: dict[str, Any]) -> None:
        if "rollbackToken" in entry:
            raise InvalidArgumentError("History entries must not carry a raw rollback token")

        parent = os.path.dirname(self._path)
        if parent:
            os.makedirs(parent, mode=_DIR_MODE, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, _FILE_MODE)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def entries(self) -> list[dict[str, Any]]:
        """All entries, oldest first. Corrupt lines are skipped with a warning."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except FileNotFoundError:
            return []

        out: list[dict[str, Any]] = []
        for lineno, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable history line %d in %s", lineno, self._path)
                continue
            if isinstance(obj, dict):
                out.append(obj)
        return out

    def rollback_eligible(self) -> list[dict[str, Any]]:
        """Install entries that recorded a batch rollback token digest."""
        return [
            e for e in self.entries()
            if e.get("action") == "install" and e.get("rollbackTokenHash")
        ]

    def find_by_id(self, prefix: str) -> Optional[dict[str, Any]]:
        for entry in self.entries():
            if str(entry.get("id", "")).startswith(prefix):
                return entry
        return None

    def find_by_token(self, token: Union[str, RollbackCredential]) -> Optional[dict[str, Any]]:
        """Eligible entry whose stored digest matches `token`, newest first."""
        digest = token.digest() if isinstance(token, RollbackCredential) else digest_token(token)
        for entry in reversed(self.rollback_eligible()):
            if entry.get("rollbackTokenHash") == digest:
                return entry
        return None


def build_install_entry(
    result: InstallResult,
    items: Iterable[PackageItem],
    *,
    instance: str,
    instance_host: str,
    profile: Optional[str] = None,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": new_history_id(),
        "timestamp": to_rfc3339(now_utc()),
        "instance": instance,
        "instanceHost": instance_host,
        "profile": profile,
        "action": "install",
        "mode": result.mode,
        "packages": [
            {"scope": i.scope, "from": i.current_version, "to": i.target_version}
            for i in items
        ],
        "result": result.outcome.value,
        "jobIds": list(result.job_ids),
    }
    if result.mode == "batch":
        entry["rollbackTokenHash"] = result.rollback_digest
        entry["rollbackTokenHint"] = result.rollback_hint
    else:
        entry["rollbackVersions"] = dict(result.rollback_versions)
    return entry


def build_rollback_entry(
    result: RollbackResult,
    *,
    instance: str,
    instance_host: str,
    profile: Optional[str] = None,
    source_entry_id: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "id": new_history_id(),
        "timestamp": to_rfc3339(now_utc()),
        "instance": instance,
        "instanceHost": instance_host,
        "profile": profile,
        "action": "rollback",
        "mode": result.mode,
        "rollbackTokenHint": result.rollback_hint,
        "sourceEntryId": source_entry_id,
        "result": result.outcome.value,
        "jobIds": [o.job_id for o in result.outcomes if o.job_id],
    }
