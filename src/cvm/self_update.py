"""
Self update for the cvm zipapp.
"""

import json
import logging
import os
import stat
import subprocess
import sys
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, cast

from .constants import GITHUB_API_URL, SCRIPT_ASSET_NAME
from .errors import SelfUpdateError

# Set up logging
logger = logging.getLogger(__name__)


def fetch_latest_release(url: str = GITHUB_API_URL) -> Dict[str, Any]:
    """Fetch the latest release document from the GitHub API."""
    cmd = ["curl", "-L", "-s", "-S", "-f", "-H", "Accept: application/vnd.github+json", url]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        raise SelfUpdateError("curl is required to check for updates")

    if result.returncode != 0:
        logger.debug(f"curl exited with {result.returncode}: {result.stderr.strip()}")
        raise SelfUpdateError("Failed to fetch the latest cvm release")

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise SelfUpdateError(f"Invalid release information: {e}")
    if not isinstance(data, dict):
        raise SelfUpdateError("Invalid release information")
    return cast(Dict[str, Any], data)


def release_version(release: Dict[str, Any]) -> str:
    tag = release.get("tag_name")
    if not isinstance(tag, str) or not tag:
        raise SelfUpdateError("Latest release has no tag")
    return tag[1:] if tag.startswith("v") else tag


def get_latest_tool_version(url: str = GITHUB_API_URL) -> str:
    """Get the version of the latest cvm release."""
    return release_version(fetch_latest_release(url))


def find_asset_url(release: Dict[str, Any], name: str = SCRIPT_ASSET_NAME) -> str:
    """Get the download URL of a named release asset."""
    for asset in cast(List[Any], release.get("assets") or []):
        if isinstance(asset, dict) and asset.get("name") == name:
            url = asset.get("browser_download_url")
            if isinstance(url, str) and url:
                return url
    raise SelfUpdateError(f"Failed to find download URL for {name}")


def running_zipapp() -> Optional[Path]:
    """Get the path of the running zipapp, or None for other installs."""
    if not sys.argv or not sys.argv[0]:
        return None
    path = Path(sys.argv[0]).resolve()
    if path.suffix != ".pyz" or not path.is_file() or not zipfile.is_zipfile(path):
        return None
    return path


def update_tool(target: Optional[Path] = None, url: str = GITHUB_API_URL) -> str:
    """Replace the zipapp with the latest release, returning its version."""
    target = target or running_zipapp()
    if target is None:
        raise SelfUpdateError(
            f"Self update only works for the {SCRIPT_ASSET_NAME} zipapp; "
            "update this installation with your package manager"
        )

    release = fetch_latest_release(url)
    version = release_version(release)
    download_url = find_asset_url(release)

    print(f"Downloading cvm version {version}...")
    temp_file = target.with_name(f"{target.name}.new")
    cmd = ["curl", "-L", "-s", "-S", "-f", "-o", str(temp_file), download_url]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        raise SelfUpdateError("curl is required to download updates")

    if result.returncode != 0 or not temp_file.is_file():
        temp_file.unlink(missing_ok=True)
        raise SelfUpdateError(f"Failed to download version {version}")

    mode = temp_file.stat().st_mode
    temp_file.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    os.replace(temp_file, target)
    logger.debug(f"Replaced {target} with release {version}")
    return version
