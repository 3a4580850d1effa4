from .ids import new_confirmation_token, new_history_id, new_uuid
from .log import REDACTED, RedactingFilter, configure_logging, redact
from .time import file_timestamp, now_utc, parse_rfc3339, require_aware, to_rfc3339
from .version import (
    UpgradeType,
    compare_versions,
    is_upgrade,
    parse_version,
    upgrade_type,
)

__all__ = [
    "new_uuid",
    "new_history_id",
    "new_confirmation_token",
    "REDACTED",
    "RedactingFilter",
    "configure_logging",
    "redact",
    "now_utc",
    "parse_rfc3339",
    "to_rfc3339",
    "require_aware",
    "file_timestamp",
    "UpgradeType",
    "compare_versions",
    "is_upgrade",
    "parse_version",
    "upgrade_type",
]
