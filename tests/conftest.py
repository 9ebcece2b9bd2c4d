import json
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))

from src.cvm.catalog import CatalogClient  # noqa: E402
from src.cvm.drivers import get_driver  # noqa: E402
from src.cvm.models import PackageFormat, StorePaths  # noqa: E402

# ============================================================================
# COMMON TEST DATA
# ============================================================================

BASE_URL = "https://downloads.cursor.com/production/abc123/linux/x64"


def appimage_url(version: str) -> str:
    return f"{BASE_URL}/Cursor-{version}-x86_64.AppImage"


SAMPLE_CATALOG = {
    "versions": [
        {
            "version": "1.7.39",
            "date": "2025-10-01",
            "platforms": {
                "linux-x64": appimage_url("1.7.39"),
                "linux-arm64": "https://downloads.cursor.com/production/abc123/linux/arm64/Cursor-1.7.39-aarch64.AppImage",
            },
        },
        {
            "version": "1.10.0",
            "platforms": {"linux-x64": appimage_url("1.10.0")},
        },
        {
            "version": "1.9.0",
            "platforms": {"linux-x64": appimage_url("1.9.0")},
        },
        {
            "version": "1.8.0",
            "platforms": {"darwin-arm64": "https://example.com/Cursor-1.8.0.dmg"},
        },
        {"platforms": {"linux-x64": appimage_url("0.0.1")}},
        "not a record",
    ]
}

# ============================================================================
# BASIC MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def mock_subprocess_result():
    """Factory fixture for creating mock subprocess results."""

    def _factory(returncode=0, stdout="", stderr=""):
        mock_result = MagicMock()
        mock_result.returncode = returncode
        mock_result.stdout = stdout
        mock_result.stderr = stderr
        return mock_result

    return _factory


@pytest.fixture
def mock_print(mocker):
    """Mock the print function."""
    return mocker.patch("builtins.print")


@pytest.fixture
def printed(mock_print):
    """Collect everything passed to print as one string."""

    def _collect():
        return "\n".join(
            " ".join(str(arg) for arg in call.args) for call in mock_print.call_args_list
        )

    return _collect


# ============================================================================
# STORE AND CATALOG FIXTURES
# ============================================================================


@pytest.fixture
def store_paths(tmp_path):
    """Provide an empty version store under the test's temporary directory."""
    paths = StorePaths.from_root(tmp_path / "cvm")
    paths.ensure()
    return paths


@pytest.fixture
def catalog_cache(tmp_path):
    """Write a fresh version history cache file."""
    cache_file = tmp_path / "cursor_versions.json"
    cache_file.write_text(json.dumps(SAMPLE_CATALOG))
    return cache_file


@pytest.fixture
def catalog(catalog_cache):
    """Provide a catalog client served from the fresh cache."""
    return CatalogClient("linux-x64", cache_path=str(catalog_cache))


@pytest.fixture
def make_driver(store_paths, catalog):
    """Factory fixture for creating format drivers on the test store."""

    def _factory(package_format=PackageFormat.APPIMAGE, search_depth=8):
        return get_driver(package_format, store_paths, catalog, search_depth)

    return _factory


@pytest.fixture
def curl_download(mocker, mock_subprocess_result):
    """Mock curl downloads, writing `content` to the requested output file."""

    def _factory(content=b"payload", status="200", returncode=0):
        def _run(cmd, *args, **kwargs):
            output = Path(cmd[cmd.index("-o") + 1])
            output.write_bytes(content)
            return mock_subprocess_result(returncode=returncode, stdout=status)

        return mocker.patch("subprocess.run", side_effect=_run)

    return _factory


@pytest.fixture
def make_executable():
    """Factory fixture creating executable files, including parent directories."""

    def _factory(path: Path, content: str = "#!/bin/sh\n") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        os.chmod(path, 0o755)
        return path

    return _factory
