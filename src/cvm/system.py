"""
System utilities for cvm.
"""

import logging
import platform
import subprocess
from typing import Dict, List, Optional, Tuple

from .constants import NC
from .errors import UnsupportedPlatform
from .models import PackageFormat

# Set up logging
logger = logging.getLogger(__name__)

# Map of `uname -m` values to catalog platform identifiers
PLATFORMS: Dict[str, str] = {
    "x86_64": "linux-x64",
    "amd64": "linux-x64",
    "aarch64": "linux-arm64",
    "arm64": "linux-arm64",
}

BASE_DEPENDENCIES = ("curl",)
PACKAGE_DEPENDENCIES: Dict[PackageFormat, Tuple[str, ...]] = {
    PackageFormat.APPIMAGE: (),
    PackageFormat.RPM: ("rpm2cpio", "cpio"),
    PackageFormat.DEB: ("dpkg-deb",),
}


def check_command_presence(name: str) -> bool:
    """Check if a command is available in the system."""
    try:
        result = subprocess.run(
            ["which", name], capture_output=True, text=True, check=False
        )
        return result.returncode == 0
    except FileNotFoundError:
        return False


def missing_dependencies(package_format: PackageFormat) -> List[str]:
    """List the required programs that are not installed for a format."""
    required = [*BASE_DEPENDENCIES, *PACKAGE_DEPENDENCIES[package_format]]
    missing = [program for program in required if not check_command_presence(program)]
    if missing:
        logger.debug(f"Missing programs for {package_format} packages: {missing}")
    return missing


def get_platform(machine: Optional[str] = None) -> str:
    """Get the catalog platform identifier for this CPU architecture."""
    architecture = machine if machine is not None else platform.machine()
    platform_id = PLATFORMS.get(architecture.lower())
    if platform_id is None:
        raise UnsupportedPlatform(f"Unsupported architecture: {architecture}")
    return platform_id


def print_color(color: str, text: str) -> None:
    """Print text wrapped in an ANSI color."""
    print(f"{color}{text}{NC}")
