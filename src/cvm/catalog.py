"""
Version history client for cvm.

The remote document lists every published Cursor version together with the
AppImage download URL for each platform:

    {"versions": [{"version": "1.7.39",
                   "platforms": {"linux-x64": "https://...AppImage"}}]}

The document is cached on disk and reused while it is younger than the
freshness window.
"""

import json
import logging
import os
import subprocess
import time
from typing import Any, Dict, List, Optional, cast

from .constants import CACHE_FILE_PATH, CACHE_MAX_AGE_MINUTES, VERSION_HISTORY_URL
from .errors import CatalogUnavailable, VersionNotAvailable
from .models import CatalogEntry
from .version import is_valid_version, sort_versions

# Set up logging
logger = logging.getLogger(__name__)


class CatalogClient:
    """Fetches and caches the remote version history using curl."""

    def __init__(
        self,
        platform: str,
        cache_path: Optional[str] = None,
        url: str = VERSION_HISTORY_URL,
        max_age_minutes: int = CACHE_MAX_AGE_MINUTES,
    ):
        self.platform = platform
        self.cache_path = cache_path or CACHE_FILE_PATH
        self.url = url
        self.max_age_minutes = max_age_minutes
        self._catalog: Optional[Dict[str, Any]] = None

    @property
    def temp_path(self) -> str:
        """Get the path the fresh document is downloaded to before replacing the cache."""
        return f"{self.cache_path}.tmp"

    def _cache_is_fresh(self) -> bool:
        """Check whether the cache file exists and is inside the freshness window."""
        try:
            age = time.time() - os.path.getmtime(self.cache_path)
        except OSError:
            return False
        return age < self.max_age_minutes * 60

    def _read_document(self, path: str) -> Optional[Dict[str, Any]]:
        """Load a version history document, returning None if it is unusable."""
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Could not read version history from {path}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        document = cast(Dict[str, Any], data)
        if not isinstance(document.get("versions"), list):
            return None
        return document

    def _curl_fetch(self, output_path: str) -> subprocess.CompletedProcess[str]:
        """Download the version history to a file, reporting the HTTP status."""
        cmd = [
            "curl",
            "-L",  # Follow redirects
            "-s",  # Silent mode
            "-S",  # Show errors
            "-f",  # Fail on HTTP error
            "-w",
            "%{http_code}",
            "-o",
            output_path,
            self.url,
        ]
        return subprocess.run(cmd, capture_output=True, text=True, check=False)

    def _discard_temp(self) -> None:
        try:
            os.remove(self.temp_path)
        except FileNotFoundError:
            pass

    def _refresh_cache(self) -> Dict[str, Any]:
        """Fetch the remote document and atomically replace the cache."""
        logger.debug(f"Fetching version history from {self.url}")
        try:
            result = self._curl_fetch(self.temp_path)
        except FileNotFoundError:
            self._discard_temp()
            raise CatalogUnavailable("curl is required to fetch the version history")

        status = result.stdout.strip()
        if result.returncode != 0 or status != "200":
            self._discard_temp()
            logger.debug(f"curl exited with {result.returncode}: {result.stderr.strip()}")
            raise CatalogUnavailable(
                f"Failed to fetch version history (HTTP {status or 'n/a'})"
            )

        document = self._read_document(self.temp_path)
        if document is None:
            self._discard_temp()
            raise CatalogUnavailable("Fetched version history is not valid JSON")

        os.replace(self.temp_path, self.cache_path)
        logger.debug(f"Cached version history at {self.cache_path}")
        return document

    def fetch_catalog(self) -> Dict[str, Any]:
        """Get the version history, using the cache while it is fresh."""
        if self._catalog is not None:
            return self._catalog

        if self._cache_is_fresh():
            document = self._read_document(self.cache_path)
            if document is not None:
                logger.debug(f"Using cached version history at {self.cache_path}")
                self._catalog = document
                return document
            logger.debug("Cached version history is unreadable, fetching again")

        self._catalog = self._refresh_cache()
        return self._catalog

    def entries(self) -> List[CatalogEntry]:
        """Parse the version records, skipping malformed ones."""
        entries: List[CatalogEntry] = []
        for record in cast(List[Any], self.fetch_catalog()["versions"]):
            if not isinstance(record, dict):
                continue
            record_dict = cast(Dict[str, Any], record)
            version = record_dict.get("version")
            platforms = record_dict.get("platforms")
            if not isinstance(version, str) or not isinstance(platforms, dict):
                continue
            if not is_valid_version(version):
                logger.debug(f"Skipping catalog record with version {version!r}")
                continue
            urls = {
                str(key): value
                for key, value in cast(Dict[Any, Any], platforms).items()
                if isinstance(value, str)
            }
            entries.append(CatalogEntry(version=version, platforms=urls))
        return entries

    def list_versions(self, platform: Optional[str] = None) -> List[str]:
        """List versions published for a platform in ascending order."""
        target = platform or self.platform
        return sort_versions(
            entry.version for entry in self.entries() if entry.url_for(target)
        )

    def latest_version(self, platform: Optional[str] = None) -> str:
        """Get the newest version published for a platform."""
        target = platform or self.platform
        versions = self.list_versions(target)
        if not versions:
            raise VersionNotAvailable(f"No versions are available for platform {target}.")
        return versions[-1]

    def has_version(self, version: str, platform: Optional[str] = None) -> bool:
        """Check whether a version is published for a platform."""
        return version in self.list_versions(platform)

    def download_url_for(self, version: str, platform: Optional[str] = None) -> str:
        """Get the AppImage download URL of a version."""
        target = platform or self.platform
        for entry in self.entries():
            if entry.version != version:
                continue
            url = entry.url_for(target)
            if url:
                return url
        raise VersionNotAvailable(
            f"Version {version} is not available for platform {target}."
        )
