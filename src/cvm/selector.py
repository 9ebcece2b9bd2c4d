"""
Active version selection for cvm.
"""

import logging
import os
from pathlib import Path

from .drivers import FormatDriver
from .errors import NotInstalledLocally
from .models import StorePaths

# Set up logging
logger = logging.getLogger(__name__)


class Selector:
    """Points the active symlink at the executable of an installed version."""

    def __init__(self, paths: StorePaths, driver: FormatDriver):
        self.paths = paths
        self.driver = driver

    def _repoint(self, target: Path) -> None:
        """Atomically replace the active pointer with one targeting `target`."""
        link = self.paths.active_link
        temp_link = link.with_name(f".{link.name}.tmp")
        temp_link.unlink(missing_ok=True)
        os.symlink(target, temp_link)
        os.replace(temp_link, link)

    def activate(self, version: str) -> Path:
        """Make a version the active one, returning its executable.

        Native packages that were only downloaded are extracted first. If no
        executable can be found the existing pointer is left as it was.

        Raises:
            NotInstalledLocally: If the version has no local artifact
            ExtractionFailed: If a pending extraction fails
            ExecutableNotFound: If no executable can be located
        """
        if not self.driver.is_installed(version):
            raise NotInstalledLocally(version)

        self.driver.ensure_extracted(version)
        executable = self.driver.locate_executable(version)

        self._repoint(executable)
        logger.debug(f"Active pointer now targets {executable}")
        return executable
