"""
Configuration management for cvm.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Self, cast

from .constants import (
    CACHE_FILE_PATH,
    CACHE_MAX_AGE_MINUTES,
    DEFAULT_STORE_DIR,
    MAX_SEARCH_DEPTH,
    VERSION_HISTORY_URL,
)

# Set up logging
logger = logging.getLogger(__name__)

VALID_PACKAGE_TYPES = {"", "appimage", "rpm", "deb"}


@dataclass(slots=True, kw_only=True)
class SettingsConfig:
    """Global settings configuration."""

    debug_mode: bool = False
    package_type: str = ""
    store_dir: str = DEFAULT_STORE_DIR
    cache_max_age_minutes: int = CACHE_MAX_AGE_MINUTES
    search_depth: int = MAX_SEARCH_DEPTH

    def __post_init__(self):
        """Validate settings configuration."""
        if self.package_type.lower() not in VALID_PACKAGE_TYPES:
            raise ValueError(
                f"package_type must be one of {sorted(VALID_PACKAGE_TYPES)}, "
                f"got '{self.package_type}'"
            )
        if not self.store_dir:
            raise ValueError("store_dir must not be empty")
        if not 1 <= self.cache_max_age_minutes <= 1440:
            raise ValueError(
                "cache_max_age_minutes must be between 1 and 1440, "
                f"got {self.cache_max_age_minutes}"
            )
        if not 1 <= self.search_depth <= 32:
            raise ValueError(
                f"search_depth must be between 1 and 32, got {self.search_depth}"
            )


@dataclass(slots=True, kw_only=True)
class SourcesConfig:
    """Remote source and cache locations."""

    version_history_url: str = VERSION_HISTORY_URL
    cache_file: str = CACHE_FILE_PATH

    def __post_init__(self):
        if not self.version_history_url.startswith(("https://", "http://")):
            raise ValueError(
                f"version_history_url must be an http(s) URL, got '{self.version_history_url}'"
            )
        if not self.cache_file:
            raise ValueError("cache_file must not be empty")


@dataclass(slots=True, kw_only=True)
class CvmConfig:
    """Main configuration class."""

    settings: SettingsConfig = field(default_factory=lambda: SettingsConfig())
    sources: SourcesConfig = field(default_factory=lambda: SourcesConfig())

    @classmethod
    def get_default(cls) -> Self:
        """Get default configuration."""
        return cls()


class ConfigManager:
    """Manages configuration loading and saving."""

    def __init__(self):
        self._config: Optional[CvmConfig] = None
        self._config_path: Optional[Path] = None

    def get_config_path(self) -> Path:
        """Get the path to the configuration file with caching."""
        if self._config_path is None:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
            if xdg_config_home:
                config_file = Path(xdg_config_home) / "cvm.toml"
            else:
                config_file = Path.home() / ".config" / "cvm.toml"

            config_file.parent.mkdir(parents=True, exist_ok=True)
            self._config_path = config_file
        return self._config_path

    def load_config(self) -> CvmConfig:
        """Load configuration from file."""
        if self._config is not None:
            return self._config

        config_path = self.get_config_path()

        if not config_path.exists():
            try:
                self.create_default_config()
                logger.info(f"Created default config file at {config_path}")
            except OSError as e:
                logger.warning(f"Could not create config file {config_path}: {e}")
            self._config = CvmConfig.get_default()
            return self._config

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            self._config = self._parse_config(data)
            return self._config
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Error parsing TOML config file: {e}")
            logger.info("Using default configuration instead.")
            self._config = CvmConfig.get_default()
            return self._config
        except (OSError, ValueError) as e:
            logger.error(f"Error reading config file: {e}")
            logger.info("Using default configuration instead.")
            self._config = CvmConfig.get_default()
            return self._config

    def _parse_config(self, data: Dict[str, Any]) -> CvmConfig:
        """Parse configuration data from TOML."""
        config = CvmConfig()
        defaults = SettingsConfig()

        if "settings" in data:
            settings_data = cast(Dict[str, Any], data["settings"])

            debug_mode_raw = settings_data.get("debug_mode", defaults.debug_mode)
            debug_mode: bool = (
                debug_mode_raw if isinstance(debug_mode_raw, bool) else False
            )

            package_type_raw = settings_data.get("package_type", "")
            package_type: str = (
                package_type_raw if isinstance(package_type_raw, str) else ""
            )

            store_dir_raw = settings_data.get("store_dir", defaults.store_dir)
            store_dir: str = (
                store_dir_raw
                if isinstance(store_dir_raw, str) and store_dir_raw
                else defaults.store_dir
            )

            max_age_raw = settings_data.get(
                "cache_max_age_minutes", defaults.cache_max_age_minutes
            )
            cache_max_age_minutes: int = (
                max_age_raw
                if isinstance(max_age_raw, int) and not isinstance(max_age_raw, bool)
                else defaults.cache_max_age_minutes
            )

            depth_raw = settings_data.get("search_depth", defaults.search_depth)
            search_depth: int = (
                depth_raw
                if isinstance(depth_raw, int) and not isinstance(depth_raw, bool)
                else defaults.search_depth
            )

            config.settings = SettingsConfig(
                debug_mode=debug_mode,
                package_type=package_type,
                store_dir=store_dir,
                cache_max_age_minutes=cache_max_age_minutes,
                search_depth=search_depth,
            )

        if "sources" in data:
            sources_data = cast(Dict[str, Any], data["sources"])
            default_sources = SourcesConfig()

            url_raw = sources_data.get(
                "version_history_url", default_sources.version_history_url
            )
            cache_raw = sources_data.get("cache_file", default_sources.cache_file)

            config.sources = SourcesConfig(
                version_history_url=(
                    url_raw
                    if isinstance(url_raw, str)
                    else default_sources.version_history_url
                ),
                cache_file=(
                    cache_raw
                    if isinstance(cache_raw, str) and cache_raw
                    else default_sources.cache_file
                ),
            )

        return config

    def _serialize_value(self, value: Any) -> str:
        """Serialize a scalar value to TOML format using pattern matching."""
        match value:
            case bool():
                return str(value).lower()
            case int():
                return str(value)
            case str():
                escaped = value.replace("\\", "\\\\").replace('"', '\\"')
                return f'"{escaped}"'
            case _:
                return str(value)

    def create_default_config(self) -> None:
        """Create default configuration file."""
        config_path = self.get_config_path()
        default_config = CvmConfig.get_default()
        settings = default_config.settings
        sources = default_config.sources

        with open(config_path, "w") as f:
            f.write("# cvm (Cursor version manager) configuration file\n")
            f.write(f"# Default location: {config_path}\n")
            f.write("\n")

            f.write("[settings]\n")
            f.write(f"debug_mode = {self._serialize_value(settings.debug_mode)}\n")
            f.write("# One of: appimage, rpm, deb. Empty means auto-detect.\n")
            f.write(f"package_type = {self._serialize_value(settings.package_type)}\n")
            f.write(f"store_dir = {self._serialize_value(settings.store_dir)}\n")
            f.write(
                f"cache_max_age_minutes = {settings.cache_max_age_minutes}\n"
            )
            f.write(f"search_depth = {settings.search_depth}\n")
            f.write("\n")

            f.write("[sources]\n")
            f.write(
                f"version_history_url = {self._serialize_value(sources.version_history_url)}\n"
            )
            f.write(f"cache_file = {self._serialize_value(sources.cache_file)}\n")


# Global config manager instance
_config_manager = ConfigManager()


def get_config() -> CvmConfig:
    """Get the current configuration."""
    return _config_manager.load_config()
