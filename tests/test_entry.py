"""
Tests for the zipapp entry module.
"""

import sys

from pytest_mock import MockFixture


class TestEntry:
    """Test cases for the entry module."""

    def test_main_function_exists(self):
        import src.entry

        assert callable(src.entry.main)

    def test_package_dir_on_path(self):
        import src.entry

        package_dir = src.entry.os.path.dirname(src.entry.__file__)
        assert any(package_dir in p for p in sys.path)

    def test_main_returns_cli_exit_code(self, mocker: MockFixture):
        import src.entry

        mock_cli = mocker.patch.object(src.entry, "cli_main", return_value=130)

        assert src.entry.main() == 130
        mock_cli.assert_called_once_with()
