"""
Local version store for cvm.

Whether a version is installed is decided only by what exists on disk: a
downloaded artifact or an extracted directory in the format's storage
directory.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from .constants import APP_NAME
from .drivers import DRIVERS, FormatDriver
from .models import ActiveKind, ActiveVersion, PackageFormat, StorePaths
from .version import VERSION_PATTERN, latest_of, sort_versions

# Set up logging
logger = logging.getLogger(__name__)

APPIMAGE_TARGET_RE = re.compile(rf"^{APP_NAME}-({VERSION_PATTERN})\.AppImage$")
EXTRACTED_SEGMENT_RE = re.compile(rf"/{APP_NAME}-({VERSION_PATTERN})/")
VERSIONED_NAME_RE = re.compile(rf"^{APP_NAME}-({VERSION_PATTERN})")
BUILD_ARTIFACT_RE = re.compile(
    rf"^{APP_NAME}-({VERSION_PATTERN})-build-.*\.AppImage$"
)


def classify_active_target(target: Path, paths: StorePaths) -> ActiveVersion:
    """Work out which version and format a pointer target belongs to."""
    appimage_match = APPIMAGE_TARGET_RE.match(target.name)
    if appimage_match:
        return ActiveVersion(
            kind=ActiveKind.KNOWN,
            target=target,
            version=appimage_match.group(1),
            package_format=PackageFormat.APPIMAGE,
        )

    segment_match = EXTRACTED_SEGMENT_RE.search(str(target))
    if segment_match:
        version = segment_match.group(1)
        for package_format in PackageFormat:
            if package_format.is_native and target.is_relative_to(
                paths.format_dir(package_format)
            ):
                return ActiveVersion(
                    kind=ActiveKind.KNOWN,
                    target=target,
                    version=version,
                    package_format=package_format,
                )
        return ActiveVersion(
            kind=ActiveKind.UNKNOWN_FORMAT, target=target, version=version
        )

    name_match = VERSIONED_NAME_RE.match(target.name)
    if name_match:
        return ActiveVersion(
            kind=ActiveKind.UNKNOWN_FORMAT, target=target, version=name_match.group(1)
        )

    return ActiveVersion(kind=ActiveKind.UNPARSEABLE, target=target)


def installed_versions(driver: FormatDriver) -> List[str]:
    """List the versions with an artifact in a driver's storage directory."""
    storage_dir = driver.storage_dir
    if not storage_dir.is_dir():
        return []

    archive_pattern = driver.archive_pattern
    dir_pattern = driver.extracted_dir_pattern
    versions: List[str] = []
    for entry in storage_dir.iterdir():
        if entry.is_file():
            match = archive_pattern.match(entry.name)
        elif dir_pattern is not None and entry.is_dir():
            match = dir_pattern.match(entry.name)
        else:
            match = None
        if match:
            versions.append(match.group(1))
    return sort_versions(versions)


class VersionStore:
    """Installed versions of the active package format."""

    def __init__(self, paths: StorePaths, driver: FormatDriver):
        self.paths = paths
        self.driver = driver

    @property
    def package_format(self) -> PackageFormat:
        return self.driver.package_format

    def list_installed(self) -> List[str]:
        """List installed versions in ascending order."""
        return installed_versions(self.driver)

    def latest_installed(self) -> Optional[str]:
        return latest_of(self.list_installed())

    def active_target(self) -> Optional[Path]:
        """Read the active pointer, or None when there is none."""
        link = self.paths.active_link
        if not link.is_symlink():
            return None
        target = Path(os.readlink(link))
        if not target.is_absolute():
            target = link.parent / target
        return target

    def active_version(self) -> Optional[ActiveVersion]:
        """Classify the active pointer target, or None when there is none."""
        target = self.active_target()
        if target is None:
            return None
        return classify_active_target(target, self.paths)

    def is_active(self, version: str) -> bool:
        """Check whether the pointer targets a version in the current format."""
        active = self.active_version()
        return active is not None and active.matches(version, self.package_format)

    def _clear_active(self) -> None:
        self.paths.active_link.unlink(missing_ok=True)
        logger.debug(f"Removed active pointer {self.paths.active_link}")

    def remove(self, version: str) -> bool:
        """Delete a version's artifacts.

        Returns False if the version is not installed. The active pointer is
        cleared when it targets this version or is left dangling.
        """
        if not self.driver.is_installed(version):
            return False

        was_active = self.is_active(version)
        if was_active:
            self._clear_active()

        self.driver.remove_artifacts(version)

        link = self.paths.active_link
        if not was_active and link.is_symlink() and not link.exists():
            logger.debug("Active pointer no longer resolves, removing it")
            self._clear_active()

        logger.debug(f"Removed {self.package_format} artifacts of version {version}")
        return True

    def has_any_installations(self) -> bool:
        """Check whether any format directory holds an installed version."""
        for driver_class in DRIVERS.values():
            driver = driver_class(
                self.paths, self.driver.catalog, self.driver.search_depth
            )
            if installed_versions(driver):
                return True
        return False

    def normalize_build_artifacts(self) -> None:
        """Rename AppImages saved with a build suffix to the regular name.

        When the regular file already exists the build artifact is deleted.
        """
        appimage_dir = self.paths.appimage_dir
        if not appimage_dir.is_dir():
            return

        for entry in sorted(appimage_dir.iterdir()):
            match = BUILD_ARTIFACT_RE.match(entry.name)
            if not match or not entry.is_file():
                continue
            regular = appimage_dir / f"{APP_NAME}-{match.group(1)}.AppImage"
            if regular.exists():
                logger.debug(f"Deleting duplicate build artifact {entry.name}")
                entry.unlink()
            else:
                logger.debug(f"Renaming {entry.name} to {regular.name}")
                entry.rename(regular)
