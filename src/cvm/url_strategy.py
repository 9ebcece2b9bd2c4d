"""
Download URL construction for native packages.

The version history only publishes AppImage URLs such as

    https://downloads.cursor.com/production/<hash>/linux/x64/Cursor-1.7.39-x86_64.AppImage

Native packages live next to it:

    .../linux/x64/rpm/x86_64/cursor-1.7.39.el8.x86_64.rpm
    .../linux/x64/deb/amd64/cursor_1_7_39_amd64.deb
"""

import re
from typing import Dict

from .constants import APP_NAME
from .errors import UnsupportedFormat, UrlDerivationError
from .models import PackageFormat

APPIMAGE_FILENAME_RE = re.compile(r"/[^/]+\.AppImage$", re.IGNORECASE)

# Platform identifier -> architecture names used by each package format
RPM_ARCHES: Dict[str, str] = {"linux-x64": "x86_64", "linux-arm64": "aarch64"}
DEB_ARCHES: Dict[str, str] = {"linux-x64": "amd64", "linux-arm64": "arm64"}


def base_url_of(appimage_url: str) -> str:
    """Strip the AppImage filename from its URL."""
    base_url, count = APPIMAGE_FILENAME_RE.subn("", appimage_url)
    if count == 0 or not base_url:
        raise UrlDerivationError(f"Not an AppImage download URL: {appimage_url}")
    return base_url


def _arch_for(arches: Dict[str, str], platform: str) -> str:
    try:
        return arches[platform]
    except KeyError:
        raise UrlDerivationError(f"No native packages for platform {platform}")


def rpm_url(appimage_url: str, version: str, platform: str = "linux-x64") -> str:
    arch = _arch_for(RPM_ARCHES, platform)
    return f"{base_url_of(appimage_url)}/rpm/{arch}/{APP_NAME}-{version}.el8.{arch}.rpm"


def deb_url(appimage_url: str, version: str, platform: str = "linux-x64") -> str:
    arch = _arch_for(DEB_ARCHES, platform)
    # Debian filenames use underscores between version components
    deb_version = version.replace(".", "_")
    return f"{base_url_of(appimage_url)}/deb/{arch}/{APP_NAME}_{deb_version}_{arch}.deb"


def derive_url(
    appimage_url: str,
    version: str,
    package_format: PackageFormat,
    platform: str = "linux-x64",
) -> str:
    """Derive the download URL of a version for a package format."""
    match package_format:
        case PackageFormat.APPIMAGE:
            return appimage_url
        case PackageFormat.RPM:
            return rpm_url(appimage_url, version, platform)
        case PackageFormat.DEB:
            return deb_url(appimage_url, version, platform)
        case _:
            raise UnsupportedFormat(f"Unknown package type: {package_format}")
