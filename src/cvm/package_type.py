"""
Package format resolution for cvm.
"""

import logging
from typing import Callable, Optional, Tuple

from .models import PackageFormat
from .system import check_command_presence

# Set up logging
logger = logging.getLogger(__name__)

# Probed in order; the first family with any manager present wins
PACKAGE_MANAGER_PROBES: Tuple[Tuple[PackageFormat, Tuple[str, ...]], ...] = (
    (PackageFormat.RPM, ("dnf", "yum", "rpm")),
    (PackageFormat.DEB, ("apt", "dpkg")),
)


def parse_package_format(value: Optional[str]) -> Optional[PackageFormat]:
    """Parse a package type token case-insensitively.

    Invalid tokens are logged and ignored.
    """
    if not value:
        return None
    token = value.strip().lower()
    try:
        return PackageFormat(token)
    except ValueError:
        logger.warning(f"Invalid package type '{value}', ignoring")
        return None


def detect_package_format(
    is_available: Optional[Callable[[str], bool]] = None,
) -> PackageFormat:
    """Detect the package format from the host package manager."""
    probe = is_available or check_command_presence
    for package_format, managers in PACKAGE_MANAGER_PROBES:
        for manager in managers:
            if probe(manager):
                logger.debug(f"Found {manager}, using {package_format} packages")
                return package_format
    logger.debug("No native package manager found, using AppImage")
    return PackageFormat.APPIMAGE


def resolve_package_format(
    override: Optional[str] = None,
    is_available: Optional[Callable[[str], bool]] = None,
) -> PackageFormat:
    """Resolve the package format for this invocation."""
    package_format = parse_package_format(override)
    if package_format is not None:
        logger.debug(f"Using package type override: {package_format}")
        return package_format
    return detect_package_format(is_available)
