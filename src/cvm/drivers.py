"""
Package format drivers for cvm.

Each supported package format has one driver that knows how to download,
extract and locate the Cursor executable for a version. The driver for the
current invocation is chosen once by get_driver().
"""

import logging
import os
import re
import shutil
import stat
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, Dict, List, Optional, Tuple, Type

from .catalog import CatalogClient
from .constants import APP_DISPLAY_NAME, APP_NAME, MAX_SEARCH_DEPTH
from .errors import (
    DownloadFailed,
    ExecutableNotFound,
    ExtractionFailed,
    UnsupportedFormat,
)
from .models import PackageFormat, StorePaths
from .url_strategy import derive_url
from .version import VERSION_PATTERN

# Set up logging
logger = logging.getLogger(__name__)


def find_executable(root: Path, name: str, max_depth: int) -> Optional[Path]:
    """Search a tree for an executable file called `name`.

    Files deeper than `max_depth` path components below `root` are ignored.
    When several files match, the one closest to `root` wins, ties broken
    by path order.
    """
    matches: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        depth = len(Path(dirpath).relative_to(root).parts)
        if depth + 1 >= max_depth:
            dirnames.clear()
        if depth + 1 > max_depth:
            continue
        if name in filenames:
            candidate = Path(dirpath) / name
            if candidate.is_file() and os.access(candidate, os.X_OK):
                matches.append(candidate)

    if not matches:
        return None
    return min(matches, key=lambda p: (len(p.relative_to(root).parts), str(p)))


class FormatDriver(ABC):
    """Common behavior of every package format."""

    package_format: ClassVar[PackageFormat]

    def __init__(
        self,
        paths: StorePaths,
        catalog: CatalogClient,
        search_depth: int = MAX_SEARCH_DEPTH,
    ):
        self.paths = paths
        self.catalog = catalog
        self.search_depth = search_depth

    @property
    def storage_dir(self) -> Path:
        """Get the directory holding this format's artifacts."""
        return self.paths.format_dir(self.package_format)

    @property
    def archive_pattern(self) -> re.Pattern[str]:
        """Pattern matching downloaded artifact filenames, capturing the version."""
        extension = re.escape(self.package_format.extension)
        return re.compile(rf"^{APP_NAME}-({VERSION_PATTERN})\.{extension}$")

    @property
    def extracted_dir_pattern(self) -> Optional[re.Pattern[str]]:
        """Pattern matching extracted directory names, if the format extracts."""
        return None

    def archive_path(self, version: str) -> Path:
        """Get the path of the downloaded artifact for a version."""
        return self.storage_dir / f"{APP_NAME}-{version}.{self.package_format.extension}"

    def resolve_url(self, version: str) -> str:
        """Get the download URL of a version in this format."""
        appimage_url = self.catalog.download_url_for(version)
        return derive_url(
            appimage_url, version, self.package_format, self.catalog.platform
        )

    def _curl_download(
        self, url: str, output_path: Path
    ) -> subprocess.CompletedProcess[str]:
        """Download a file using curl, writing the HTTP status code to stdout.

        Progress is shown on the terminal through curl's stderr.
        """
        cmd = [
            "curl",
            "-L",  # Follow redirects
            "-f",  # Fail on HTTP error
            "-S",  # Show errors
            "--progress-bar",
            "-w",
            "%{http_code}",
            "-o",
            str(output_path),
            url,
        ]
        return subprocess.run(cmd, stdout=subprocess.PIPE, text=True, check=False)

    def _finalize_download(self, path: Path) -> None:
        """Hook run after a successful download."""

    def download(self, version: str) -> Path:
        """Download a version into the store.

        Raises:
            VersionNotAvailable: If the version is not in the catalog
            DownloadFailed: If the transfer does not complete with HTTP 200
        """
        url = self.resolve_url(version)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        destination = self.archive_path(version)

        print(f"Downloading {APP_DISPLAY_NAME} {version} ({self.package_format.label})...")
        logger.debug(f"Downloading {url} to {destination}")

        try:
            result = self._curl_download(url, destination)
        except FileNotFoundError:
            destination.unlink(missing_ok=True)
            raise DownloadFailed("curl is required to download packages")

        status = result.stdout.strip()
        complete = destination.is_file() and destination.stat().st_size > 0
        if result.returncode != 0 or status != "200" or not complete:
            # Remove the partial download
            destination.unlink(missing_ok=True)
            raise DownloadFailed(
                f"Failed to download {APP_DISPLAY_NAME} {version} "
                f"(HTTP {status or 'n/a'}, curl exit {result.returncode})"
            )

        self._finalize_download(destination)
        print(f"{APP_DISPLAY_NAME} {version} downloaded to {destination}")
        return destination

    @abstractmethod
    def extract(self, version: str) -> Path:
        """Make the downloaded artifact runnable, returning its location."""

    def ensure_extracted(self, version: str) -> None:
        """Extract a version unless that already happened."""

    @abstractmethod
    def locate_executable(self, version: str) -> Path:
        """Find the executable of an installed version."""

    @abstractmethod
    def is_installed(self, version: str) -> bool:
        """Check whether any local artifact exists for a version."""

    @abstractmethod
    def remove_artifacts(self, version: str) -> None:
        """Delete every local artifact of a version."""


class AppImageDriver(FormatDriver):
    """Self-contained AppImage files; no extraction step."""

    package_format = PackageFormat.APPIMAGE

    def _finalize_download(self, path: Path) -> None:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def extract(self, version: str) -> Path:
        return self.archive_path(version)

    def locate_executable(self, version: str) -> Path:
        path = self.archive_path(version)
        if not path.is_file():
            raise ExecutableNotFound(f"AppImage not found: {path}")
        return path

    def is_installed(self, version: str) -> bool:
        return self.archive_path(version).is_file()

    def remove_artifacts(self, version: str) -> None:
        self.archive_path(version).unlink(missing_ok=True)


class NativePackageDriver(FormatDriver):
    """Shared behavior of archive formats extracted into a version directory."""

    # Paths relative to the extracted tree, checked in order
    executable_candidates: ClassVar[Tuple[str, ...]] = ()

    @property
    def extracted_dir_pattern(self) -> Optional[re.Pattern[str]]:
        return re.compile(rf"^{APP_NAME}-({VERSION_PATTERN})$")

    def extract_dir(self, version: str) -> Path:
        """Get the directory a version is extracted into."""
        return self.storage_dir / f"{APP_NAME}-{version}"

    @abstractmethod
    def _unpack(self, archive: Path, target_dir: Path) -> None:
        """Unpack an archive into an existing empty directory.

        Raises:
            ExtractionFailed: If the unpacking tool reports an error
        """

    def extract(self, version: str) -> Path:
        """Unpack the archive of a version.

        The tree is unpacked into a hidden staging directory and only moved to
        its final name once complete, so a failed extraction never looks like
        an installed version.
        """
        label = self.package_format.label
        archive = self.archive_path(version)
        if not archive.is_file():
            raise ExtractionFailed(f"{label} file not found: {archive}")

        target = self.extract_dir(version)
        staging = self.storage_dir / f".{target.name}.partial"
        shutil.rmtree(staging, ignore_errors=True)
        staging.mkdir(parents=True)

        print(f"Extracting {label} package...")
        try:
            self._unpack(archive, staging)
        except ExtractionFailed:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise ExtractionFailed(f"Failed to extract {label} package: {e}") from e

        if target.exists():
            shutil.rmtree(target)
        staging.rename(target)
        print(f"{label} extracted successfully to {target}")
        return target

    def ensure_extracted(self, version: str) -> None:
        if not self.extract_dir(version).is_dir():
            self.extract(version)

    def locate_executable(self, version: str) -> Path:
        root = self.extract_dir(version)
        if not root.is_dir():
            raise ExecutableNotFound(
                f"{APP_DISPLAY_NAME} {version} has not been extracted: {root}"
            )

        for relative in self.executable_candidates:
            candidate = root / relative
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return candidate

        found = find_executable(root, APP_NAME, self.search_depth)
        if found is None:
            raise ExecutableNotFound(
                f"Could not find {APP_NAME} executable for version {version}"
            )
        logger.debug(f"Found {APP_NAME} executable by search: {found}")
        return found

    def is_installed(self, version: str) -> bool:
        return self.archive_path(version).is_file() or self.extract_dir(version).is_dir()

    def remove_artifacts(self, version: str) -> None:
        self.archive_path(version).unlink(missing_ok=True)
        extract_dir = self.extract_dir(version)
        if extract_dir.is_dir():
            shutil.rmtree(extract_dir)


class RpmDriver(NativePackageDriver):
    """RPM packages unpacked with rpm2cpio and cpio."""

    package_format = PackageFormat.RPM
    executable_candidates = (
        f"usr/bin/{APP_NAME}",
        f"usr/share/{APP_NAME}/bin/{APP_NAME}",
        f"opt/{APP_NAME}/{APP_NAME}",
        f"usr/share/{APP_NAME}/{APP_NAME}",
    )

    def _unpack(self, archive: Path, target_dir: Path) -> None:
        producer = subprocess.Popen(
            ["rpm2cpio", str(archive)],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
        )
        try:
            result = subprocess.run(
                ["cpio", "-idmu", "--quiet"],
                stdin=producer.stdout,
                cwd=target_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        finally:
            if producer.stdout is not None:
                producer.stdout.close()
            producer_status = producer.wait()

        if producer_status != 0:
            raise ExtractionFailed(
                f"rpm2cpio failed with exit code {producer_status} for {archive}"
            )
        if result.returncode != 0:
            raise ExtractionFailed(
                f"Failed to extract RPM package: {result.stderr.strip()}"
            )


class DebDriver(NativePackageDriver):
    """Debian packages unpacked with dpkg-deb."""

    package_format = PackageFormat.DEB
    executable_candidates = (
        f"usr/bin/{APP_NAME}",
        f"usr/share/{APP_NAME}/bin/{APP_NAME}",
        f"usr/share/{APP_NAME}/{APP_NAME}",
        f"opt/{APP_NAME}/{APP_NAME}",
    )

    def _unpack(self, archive: Path, target_dir: Path) -> None:
        result = subprocess.run(
            ["dpkg-deb", "-x", str(archive), str(target_dir)],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            raise ExtractionFailed(
                f"Failed to extract DEB package: {result.stderr.strip()}"
            )


DRIVERS: Dict[PackageFormat, Type[FormatDriver]] = {
    PackageFormat.APPIMAGE: AppImageDriver,
    PackageFormat.RPM: RpmDriver,
    PackageFormat.DEB: DebDriver,
}


def get_driver(
    package_format: PackageFormat,
    paths: StorePaths,
    catalog: CatalogClient,
    search_depth: int = MAX_SEARCH_DEPTH,
) -> FormatDriver:
    """Get the driver for a package format."""
    driver_class = DRIVERS.get(package_format)
    if driver_class is None:
        raise UnsupportedFormat(f"Unsupported package type: {package_format}")
    return driver_class(paths, catalog, search_depth)
