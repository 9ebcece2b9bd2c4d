"""Tests for the version history client."""

import json
import os
import time
from pathlib import Path

import pytest
from pytest_mock import MockFixture

from src.cvm.catalog import CatalogClient
from src.cvm.errors import CatalogUnavailable, VersionNotAvailable

FRESH_DOCUMENT = {
    "versions": [
        {
            "version": "2.0.0",
            "platforms": {
                "linux-x64": "https://downloads.cursor.com/production/f/linux/x64/Cursor-2.0.0-x86_64.AppImage"
            },
        }
    ]
}


def make_stale(path: Path) -> None:
    old = time.time() - 60 * 60
    os.utime(path, (old, old))


@pytest.fixture
def curl_fetch(mocker: MockFixture, mock_subprocess_result):
    """Mock curl writing `body` to the requested output file."""

    def _factory(body, status="200", returncode=0):
        def _run(cmd, *args, **kwargs):
            output = Path(cmd[cmd.index("-o") + 1])
            output.write_text(body)
            return mock_subprocess_result(returncode=returncode, stdout=status)

        return mocker.patch("subprocess.run", side_effect=_run)

    return _factory


class TestCatalogCache:
    """Test cache freshness handling."""

    def test_fresh_cache_avoids_network(self, catalog, mocker: MockFixture):
        """Test that a fresh cache is used without calling curl."""
        mock_run = mocker.patch("subprocess.run")

        assert catalog.list_versions() == ["1.7.39", "1.9.0", "1.10.0"]
        mock_run.assert_not_called()

    def test_stale_cache_is_refreshed_once(self, catalog, catalog_cache, curl_fetch):
        """Test that a stale cache triggers exactly one fetch."""
        make_stale(catalog_cache)
        mock_run = curl_fetch(json.dumps(FRESH_DOCUMENT))

        assert catalog.list_versions() == ["2.0.0"]
        assert catalog.latest_version() == "2.0.0"
        assert mock_run.call_count == 1

        assert json.loads(catalog_cache.read_text()) == FRESH_DOCUMENT
        assert not Path(catalog.temp_path).exists()

    def test_missing_cache_is_fetched(self, tmp_path, curl_fetch):
        cache_file = tmp_path / "missing.json"
        mock_run = curl_fetch(json.dumps(FRESH_DOCUMENT))

        client = CatalogClient("linux-x64", cache_path=str(cache_file))
        assert client.has_version("2.0.0")
        assert cache_file.exists()

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "curl"
        assert cmd[-1] == client.url

    def test_corrupt_fresh_cache_is_refetched(self, catalog, catalog_cache, curl_fetch):
        catalog_cache.write_text("{not json")
        mock_run = curl_fetch(json.dumps(FRESH_DOCUMENT))

        assert catalog.list_versions() == ["2.0.0"]
        mock_run.assert_called_once()

    def test_http_failure_keeps_previous_cache(self, catalog, catalog_cache, curl_fetch):
        """Test that a failed fetch raises and leaves the old cache untouched."""
        make_stale(catalog_cache)
        previous = catalog_cache.read_text()
        curl_fetch("<html>Not Found</html>", status="404", returncode=22)

        with pytest.raises(CatalogUnavailable, match="HTTP 404"):
            catalog.fetch_catalog()

        assert catalog_cache.read_text() == previous
        assert not Path(catalog.temp_path).exists()

    def test_invalid_json_is_rejected(self, catalog, catalog_cache, curl_fetch):
        make_stale(catalog_cache)
        curl_fetch("this is not json")

        with pytest.raises(CatalogUnavailable, match="not valid JSON"):
            catalog.fetch_catalog()
        assert not Path(catalog.temp_path).exists()

    def test_curl_missing(self, catalog, catalog_cache, mocker: MockFixture):
        make_stale(catalog_cache)
        mocker.patch("subprocess.run", side_effect=FileNotFoundError)

        with pytest.raises(CatalogUnavailable, match="curl is required"):
            catalog.fetch_catalog()


class TestCatalogQueries:
    """Test queries against the parsed version history."""

    def test_platform_filter(self, catalog):
        assert catalog.list_versions("linux-arm64") == ["1.7.39"]
        assert catalog.list_versions("darwin-arm64") == ["1.8.0"]

    def test_malformed_records_are_skipped(self, catalog):
        versions = [entry.version for entry in catalog.entries()]
        assert "0.0.1" not in versions
        assert len(versions) == 4

    def test_non_numeric_versions_are_skipped(self, tmp_path):
        cache_file = tmp_path / "versions.json"
        document = {
            "versions": [
                {"version": "1.9.0", "platforms": {"linux-x64": "https://x/a.AppImage"}},
                {"version": "../evil", "platforms": {"linux-x64": "https://x/b.AppImage"}},
            ]
        }
        cache_file.write_text(json.dumps(document))

        client = CatalogClient("linux-x64", cache_path=str(cache_file))
        assert client.list_versions() == ["1.9.0"]

    def test_latest_version(self, catalog):
        assert catalog.latest_version() == "1.10.0"

    def test_latest_version_without_builds(self, catalog):
        with pytest.raises(VersionNotAvailable):
            catalog.latest_version("linux-riscv64")

    def test_every_listed_version_has_url(self, catalog):
        for version in catalog.list_versions():
            assert catalog.download_url_for(version).endswith(".AppImage")

    def test_download_url_for_unknown_version(self, catalog):
        with pytest.raises(
            VersionNotAvailable,
            match="Version 9.9.9 is not available for platform linux-x64",
        ):
            catalog.download_url_for("9.9.9")

    def test_download_url_for_other_platform(self, catalog):
        with pytest.raises(VersionNotAvailable):
            catalog.download_url_for("1.9.0", "linux-arm64")

    def test_has_version(self, catalog):
        assert catalog.has_version("1.9.0")
        assert not catalog.has_version("1.8.0")
