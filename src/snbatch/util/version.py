"""MAJOR.MINOR.PATCH comparison and upgrade classification."""

from __future__ import annotations

import re
from enum import Enum

_LEADING_INT = re.compile(r"^\s*(\d+)")


class UpgradeType(str, Enum):
    """Upgrade magnitude between two versions."""

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


def parse_version(value: object) -> tuple[int, int, int]:
    """
    Parse a version string into (major, minor, patch).

    Lenient: missing or non-numeric parts read
    as 0, and only the leading digits of each part count ("3a" -> 3).
    Anything past the third part is ignored.
    """
    parts = str(value if value is not None else "").split(".")[:3]
    nums: list[int] = []
    for part in parts:
        m = _LEADING_INT.match(part)
        nums.append(int(m.group(1)) if m else 0)
    while len(nums) < 3:
        nums.append(0)
    return nums[0], nums[1], nums[2]


def compare_versions(a: object, b: object) -> int:
    """Return -1, 0 or 1 as a is older than, equal to, or newer than b."""
    pa = parse_version(a)
    pb = parse_version(b)
    if pa < pb:
        return -1
    if pa > pb:
        return 1
    return 0


def is_upgrade(current: object, target: object) -> bool:
    """True if target is strictly newer than current."""
    return compare_versions(current, target) < 0


def upgrade_type(current: object, target: object) -> UpgradeType:
    """
    Classify the magnitude of moving from current to target.

    Total and pure: NONE whenever target is not strictly newer.
    """
    if not is_upgrade(current, target):
        return UpgradeType.NONE
    cur_major, cur_minor, _ = parse_version(current)
    tgt_major, tgt_minor, _ = parse_version(target)
    if tgt_major > cur_major:
        return UpgradeType.MAJOR
    if tgt_minor > cur_minor:
        return UpgradeType.MINOR
    return UpgradeType.PATCH
