"""Package models: upgradeable items and live installed packages."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from snbatch.util.version import UpgradeType, upgrade_type


class PackageKind(str, Enum):
    """What kind of installable unit a package is."""

    APPLICATION = "application"
    PLUGIN = "plugin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PackageKind":
        """Accept the remote/legacy spellings ("app", "application", "plugin")."""
        if isinstance(value, str) and value.strip().lower() == "plugin":
            return cls.PLUGIN
        return cls.APPLICATION


@dataclass(frozen=True, slots=True)
class PackageItem:
    """
    One upgradeable unit with its current and target version.

    Notes:
        - `scope` is the unique key within a plan.
        - `magnitude` is derived from the versions on every access and is
          never stored on the item.
        - `source_ref` is the remote record id (sys_id) on the environment the
          item was discovered on.
    """

    scope: str
    name: str
    current_version: str
    target_version: str
    kind: PackageKind = PackageKind.APPLICATION
    source_ref: Optional[str] = None
    has_demo_data: bool = False
    load_demo_data: bool = False

    @property
    def magnitude(self) -> UpgradeType:
        return upgrade_type(self.current_version, self.target_version)

    def with_demo_data(self, enabled: bool) -> "PackageItem":
        return replace(self, load_demo_data=enabled)

    def to_install_payload(self) -> dict[str, Any]:
        """Shape of one entry in a batch install request."""
        return {
            "id": self.source_ref,
            "type": self.kind.value,
            "requested_version": self.target_version,
            "load_demo_data": self.load_demo_data,
        }


@dataclass(frozen=True, slots=True)
class InstalledPackage:
    """A package as currently installed on an environment."""

    scope: str
    name: str
    version: str
    kind: PackageKind = PackageKind.APPLICATION
    source_ref: Optional[str] = None
    latest_version: Optional[str] = None
    has_demo_data: bool = False

    def to_package_item(self, target_version: Optional[str] = None) -> PackageItem:
        """
        Build the upgrade item for this package.

        The target defaults to `latest_version`, falling back to the installed
        version (magnitude NONE) when nothing newer is known.
        """
        target = target_version or self.latest_version or self.version
        return PackageItem(
            scope=self.scope,
            name=self.name,
            current_version=self.version,
            target_version=target,
            kind=self.kind,
            source_ref=self.source_ref,
            has_demo_data=self.has_demo_data,
        )
