"""
Data models for cvm.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Dict, Optional, Self, cast

from .constants import (
    ACTIVE_LINK_NAME,
    APPIMAGE_SUBDIR,
    ASSETS_SUBDIR,
    DEB_SUBDIR,
    RPM_SUBDIR,
)


class PackageFormat(StrEnum):
    """Enumeration of supported package formats."""

    APPIMAGE = "appimage"
    RPM = "rpm"
    DEB = "deb"

    @property
    def extension(self) -> str:
        """File extension used for downloaded artifacts."""
        return _EXTENSIONS[self]

    @property
    def label(self) -> str:
        """Human readable name."""
        return _LABELS[self]

    @property
    def subdir(self) -> str:
        """Store subdirectory holding artifacts of this format."""
        return _SUBDIRS[self]

    @property
    def is_native(self) -> bool:
        return self is not PackageFormat.APPIMAGE


_EXTENSIONS = {
    PackageFormat.APPIMAGE: "AppImage",
    PackageFormat.RPM: "rpm",
    PackageFormat.DEB: "deb",
}
_LABELS = {
    PackageFormat.APPIMAGE: "AppImage",
    PackageFormat.RPM: "RPM",
    PackageFormat.DEB: "DEB",
}
_SUBDIRS = {
    PackageFormat.APPIMAGE: APPIMAGE_SUBDIR,
    PackageFormat.RPM: RPM_SUBDIR,
    PackageFormat.DEB: DEB_SUBDIR,
}


@dataclass(slots=True, frozen=True)
class CatalogEntry:
    """One version record from the remote version history."""

    version: str
    platforms: Dict[str, str] = field(
        default_factory=lambda: cast(Dict[str, str], {})
    )

    def url_for(self, platform: str) -> Optional[str]:
        """Get the AppImage URL for a platform, if published."""
        url = self.platforms.get(platform)
        return url or None


@dataclass(slots=True, frozen=True)
class StorePaths:
    """Locations inside the version store."""

    root: Path

    @classmethod
    def from_root(cls, root: str | Path) -> Self:
        return cls(root=Path(root).expanduser().absolute())

    @property
    def appimage_dir(self) -> Path:
        return self.root / APPIMAGE_SUBDIR

    @property
    def rpm_dir(self) -> Path:
        return self.root / RPM_SUBDIR

    @property
    def deb_dir(self) -> Path:
        return self.root / DEB_SUBDIR

    @property
    def assets_dir(self) -> Path:
        return self.root / ASSETS_SUBDIR

    @property
    def active_link(self) -> Path:
        return self.root / ACTIVE_LINK_NAME

    def format_dir(self, package_format: PackageFormat) -> Path:
        """Get the storage directory for a package format."""
        return self.root / package_format.subdir

    def ensure(self) -> None:
        """Create the store directories if they are missing."""
        for directory in (
            self.appimage_dir,
            self.rpm_dir,
            self.deb_dir,
            self.assets_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)


class ActiveKind(StrEnum):
    """How much of the active pointer target could be classified."""

    KNOWN = "known"
    UNKNOWN_FORMAT = "unknown_format"
    UNPARSEABLE = "unparseable"


@dataclass(slots=True, frozen=True)
class ActiveVersion:
    """Classification of the active pointer target."""

    kind: ActiveKind
    target: Path
    version: Optional[str] = None
    package_format: Optional[PackageFormat] = None

    @property
    def display_text(self) -> str:
        """Get the text shown for the active version."""
        if self.kind is ActiveKind.KNOWN and self.package_format is not None:
            return f"{self.version} ({self.package_format})"
        if self.kind is ActiveKind.UNKNOWN_FORMAT:
            return f"{self.version} (unknown)"
        return f"unrecognized target {self.target}"

    def matches(self, version: str, package_format: PackageFormat) -> bool:
        """Check whether this points at the given version and format."""
        return (
            self.kind is ActiveKind.KNOWN
            and self.version == version
            and self.package_format is package_format
        )
