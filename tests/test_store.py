"""Tests for the local version store."""

import os

import pytest

from src.cvm.models import ActiveKind, PackageFormat
from src.cvm.store import VersionStore, classify_active_target


@pytest.fixture
def make_store(store_paths, make_driver):
    """Factory fixture for a version store of a given format."""

    def _factory(package_format=PackageFormat.APPIMAGE):
        return VersionStore(store_paths, make_driver(package_format))

    return _factory


def point_active(store_paths, target):
    os.symlink(target, store_paths.active_link)


class TestListInstalled:
    """Test discovering installed versions."""

    def test_appimage_versions(self, make_store, store_paths):
        for name in ("cursor-1.9.0.AppImage", "cursor-1.10.0.AppImage", "notes.txt"):
            (store_paths.appimage_dir / name).write_bytes(b"x")

        store = make_store()
        assert store.list_installed() == ["1.9.0", "1.10.0"]
        assert store.latest_installed() == "1.10.0"

    def test_native_archives_and_trees_are_merged(self, make_store, store_paths):
        (store_paths.rpm_dir / "cursor-1.2.0.rpm").write_bytes(b"x")
        (store_paths.rpm_dir / "cursor-1.2.0").mkdir()
        (store_paths.rpm_dir / "cursor-1.3.0").mkdir()
        (store_paths.rpm_dir / ".cursor-1.4.0.partial").mkdir()
        (store_paths.deb_dir / "cursor-2.0.0.deb").write_bytes(b"x")

        assert make_store(PackageFormat.RPM).list_installed() == ["1.2.0", "1.3.0"]

    def test_empty_store(self, make_store):
        store = make_store(PackageFormat.DEB)
        assert store.list_installed() == []
        assert store.latest_installed() is None
        assert not store.has_any_installations()

    def test_other_formats_count_as_installations(self, make_store, store_paths):
        (store_paths.deb_dir / "cursor-2.0.0.deb").write_bytes(b"x")

        store = make_store()
        assert store.list_installed() == []
        assert store.has_any_installations()


class TestClassifyActiveTarget:
    """Test classifying the active pointer target."""

    def test_appimage(self, store_paths):
        target = store_paths.appimage_dir / "cursor-1.9.0.AppImage"
        active = classify_active_target(target, store_paths)

        assert active.kind is ActiveKind.KNOWN
        assert active.version == "1.9.0"
        assert active.package_format is PackageFormat.APPIMAGE
        assert active.display_text == "1.9.0 (appimage)"

    def test_extracted_rpm_and_deb(self, store_paths):
        rpm = classify_active_target(
            store_paths.rpm_dir / "cursor-1.7.39/usr/share/cursor/bin/cursor", store_paths
        )
        deb = classify_active_target(
            store_paths.deb_dir / "cursor-1.7.39/usr/share/cursor/cursor", store_paths
        )

        assert rpm.matches("1.7.39", PackageFormat.RPM)
        assert deb.matches("1.7.39", PackageFormat.DEB)
        assert not deb.matches("1.7.39", PackageFormat.RPM)

    def test_extracted_tree_outside_store(self, store_paths, tmp_path):
        active = classify_active_target(
            tmp_path / "elsewhere/cursor-1.5.0/bin/cursor", store_paths
        )

        assert active.kind is ActiveKind.UNKNOWN_FORMAT
        assert active.version == "1.5.0"
        assert active.display_text == "1.5.0 (unknown)"

    def test_versioned_filename(self, store_paths, tmp_path):
        active = classify_active_target(tmp_path / "cursor-1.2.3.bin", store_paths)

        assert active.kind is ActiveKind.UNKNOWN_FORMAT
        assert active.version == "1.2.3"

    def test_unparseable(self, store_paths, tmp_path):
        active = classify_active_target(tmp_path / "code", store_paths)

        assert active.kind is ActiveKind.UNPARSEABLE
        assert active.version is None
        assert "unrecognized target" in active.display_text


class TestActiveVersion:
    """Test reading the active pointer."""

    def test_no_pointer(self, make_store):
        store = make_store()
        assert store.active_version() is None
        assert not store.is_active("1.9.0")

    def test_pointer_to_appimage(self, make_store, store_paths):
        target = store_paths.appimage_dir / "cursor-1.9.0.AppImage"
        target.write_bytes(b"x")
        point_active(store_paths, target)

        store = make_store()
        assert store.active_version().version == "1.9.0"
        assert store.is_active("1.9.0")
        assert not make_store(PackageFormat.RPM).is_active("1.9.0")

    def test_dangling_pointer_is_still_classified(self, make_store, store_paths):
        point_active(store_paths, store_paths.appimage_dir / "cursor-1.0.0.AppImage")

        assert make_store().active_version().version == "1.0.0"


class TestRemove:
    """Test removing versions."""

    def test_remove_not_installed(self, make_store):
        assert make_store().remove("1.9.0") is False

    def test_removing_active_version_clears_pointer(self, make_store, store_paths):
        target = store_paths.appimage_dir / "cursor-1.9.0.AppImage"
        target.write_bytes(b"x")
        point_active(store_paths, target)

        assert make_store().remove("1.9.0") is True
        assert not target.exists()
        assert not store_paths.active_link.is_symlink()

    def test_removing_other_version_keeps_pointer(self, make_store, store_paths):
        active = store_paths.appimage_dir / "cursor-1.9.0.AppImage"
        active.write_bytes(b"x")
        (store_paths.appimage_dir / "cursor-1.10.0.AppImage").write_bytes(b"x")
        point_active(store_paths, active)

        assert make_store().remove("1.10.0") is True
        assert os.readlink(store_paths.active_link) == str(active)

    def test_same_version_of_another_format_keeps_pointer(self, make_store, store_paths):
        appimage = store_paths.appimage_dir / "cursor-1.9.0.AppImage"
        appimage.write_bytes(b"x")
        point_active(store_paths, appimage)
        (store_paths.rpm_dir / "cursor-1.9.0.rpm").write_bytes(b"x")

        assert make_store(PackageFormat.RPM).remove("1.9.0") is True
        assert store_paths.active_link.is_symlink()

    def test_removing_native_version_clears_pointer(self, make_store, store_paths, make_executable):
        executable = make_executable(
            store_paths.deb_dir / "cursor-1.9.0/usr/share/cursor/cursor"
        )
        (store_paths.deb_dir / "cursor-1.9.0.deb").write_bytes(b"x")
        point_active(store_paths, executable)

        assert make_store(PackageFormat.DEB).remove("1.9.0") is True
        assert not (store_paths.deb_dir / "cursor-1.9.0").exists()
        assert not store_paths.active_link.is_symlink()

    def test_dangling_pointer_is_cleared(self, make_store, store_paths):
        point_active(store_paths, store_paths.appimage_dir / "cursor-1.0.0-custom")
        (store_paths.appimage_dir / "cursor-2.0.0.AppImage").write_bytes(b"x")

        assert make_store().remove("2.0.0") is True
        assert not store_paths.active_link.is_symlink()


class TestNormalizeBuildArtifacts:
    """Test renaming AppImages saved with a build suffix."""

    def test_build_artifact_is_renamed(self, make_store, store_paths):
        build = store_paths.appimage_dir / "cursor-1.4.4-build-250101-x86_64.AppImage"
        build.write_bytes(b"build")

        make_store().normalize_build_artifacts()

        assert not build.exists()
        assert (store_paths.appimage_dir / "cursor-1.4.4.AppImage").read_bytes() == b"build"

    def test_duplicate_build_artifact_is_deleted(self, make_store, store_paths):
        build = store_paths.appimage_dir / "cursor-1.4.4-build-250101-x86_64.AppImage"
        build.write_bytes(b"build")
        regular = store_paths.appimage_dir / "cursor-1.4.4.AppImage"
        regular.write_bytes(b"regular")

        make_store().normalize_build_artifacts()

        assert not build.exists()
        assert regular.read_bytes() == b"regular"
