"""
Command definitions and registry for cvm.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .catalog import CatalogClient
from .config import CvmConfig
from .constants import (
    APP_DISPLAY_NAME,
    GREEN,
    ORANGE,
    PACKAGE_TYPE_ENV,
    __version__,
)
from .desktop import create_desktop_entry, remove_desktop_entry, setup_assets
from .drivers import FormatDriver, get_driver
from .errors import CvmError, SelfUpdateError, VersionNotAvailable
from .models import ActiveKind, PackageFormat, StorePaths
from .package_type import parse_package_format, resolve_package_format
from .selector import Selector
from .self_update import get_latest_tool_version, update_tool
from .shell import (
    current_shell,
    is_shell_supported,
    remove_alias,
    reload_hint,
    setup_alias,
)
from .store import VersionStore
from .system import get_platform, missing_dependencies, print_color

# Set up logging
logger = logging.getLogger(__name__)

ISSUES_URL = "https://github.com/dagimg-dot/cvm/issues"


class CommandType(StrEnum):
    """Enumeration of available commands."""

    LIST_LOCAL = "list-local"
    LIST_REMOTE = "list-remote"
    DOWNLOAD = "download"
    UPDATE = "update"
    USE = "use"
    ACTIVE = "active"
    REMOVE = "remove"
    INSTALL = "install"
    UNINSTALL = "uninstall"
    UPDATE_SCRIPT = "update-script"
    VERSION = "version"
    HELP = "help"


@dataclass(slots=True, kw_only=True)
class CommandDefinition:
    """Definition of a command."""

    name: str
    description: str
    handler: Callable[[List[str]], int]
    aliases: Tuple[str, ...] = ()
    usage: str = ""
    needs_context: bool = True


@dataclass(slots=True, kw_only=True)
class CvmContext:
    """Everything a command needs, resolved once per invocation."""

    config: CvmConfig
    platform: str
    package_format: PackageFormat
    paths: StorePaths
    catalog: CatalogClient
    driver: FormatDriver
    store: VersionStore
    selector: Selector


def build_context(
    config: CvmConfig, environ: Optional[Mapping[str, str]] = None
) -> CvmContext:
    """Resolve the platform and package format and wire up the components.

    The package type from the environment takes precedence over the one in
    the config file; without either the host is probed.
    """
    env = os.environ if environ is None else environ
    platform = get_platform()

    package_format = parse_package_format(env.get(PACKAGE_TYPE_ENV))
    if package_format is None:
        package_format = resolve_package_format(config.settings.package_type)

    paths = StorePaths.from_root(config.settings.store_dir)
    catalog = CatalogClient(
        platform,
        cache_path=config.sources.cache_file,
        url=config.sources.version_history_url,
        max_age_minutes=config.settings.cache_max_age_minutes,
    )
    driver = get_driver(package_format, paths, catalog, config.settings.search_depth)
    return CvmContext(
        config=config,
        platform=platform,
        package_format=package_format,
        paths=paths,
        catalog=catalog,
        driver=driver,
        store=VersionStore(paths, driver),
        selector=Selector(paths, driver),
    )


def prepare_context(
    config: CvmConfig, environ: Optional[Mapping[str, str]] = None
) -> CvmContext:
    """Build the context and get the store ready for commands."""
    context = build_context(config, environ)

    missing = missing_dependencies(context.package_format)
    if missing:
        raise CvmError(
            f"{missing[0]} is not installed "
            f"(required for {context.package_format} packages)."
        )

    context.paths.ensure()
    context.store.normalize_build_artifacts()
    logger.debug(
        f"Using {context.package_format} packages for {context.platform} "
        f"in {context.paths.root}"
    )
    return context


class CommandRegistry:
    """Registry for all available commands."""

    def __init__(
        self,
        context: Optional[CvmContext] = None,
        input_func: Callable[[str], str] = input,
    ):
        self.context = context
        self._input = input_func
        self._commands: Dict[str, CommandDefinition] = {}
        self._aliases: Dict[str, str] = {}
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all available commands."""
        definitions = [
            CommandDefinition(
                name=CommandType.LIST_LOCAL,
                description="Lists locally available versions",
                handler=self._handle_list_local,
                aliases=("-l", "--list-local"),
            ),
            CommandDefinition(
                name=CommandType.LIST_REMOTE,
                description="Lists versions available for download",
                handler=self._handle_list_remote,
                aliases=("-L", "--list-remote"),
            ),
            CommandDefinition(
                name=CommandType.DOWNLOAD,
                description="Downloads a version",
                handler=self._handle_download,
                aliases=("-d", "--download"),
                usage="<version>",
            ),
            CommandDefinition(
                name=CommandType.UPDATE,
                description="Downloads and selects the latest version",
                handler=self._handle_update,
                aliases=("-u", "--update"),
            ),
            CommandDefinition(
                name=CommandType.USE,
                description="Selects a locally available version",
                handler=self._handle_use,
                aliases=("-U", "--use"),
                usage="<version>",
            ),
            CommandDefinition(
                name=CommandType.ACTIVE,
                description="Shows the currently selected version",
                handler=self._handle_active,
                aliases=("-a", "--active"),
            ),
            CommandDefinition(
                name=CommandType.REMOVE,
                description="Removes one or more locally available versions",
                handler=self._handle_remove,
                aliases=("-r", "--remove"),
                usage="<version...>",
            ),
            CommandDefinition(
                name=CommandType.INSTALL,
                description="Adds an alias `cursor` and installs the latest or given version",
                handler=self._handle_install,
                aliases=("-i", "--install"),
                usage="[<version>]",
            ),
            CommandDefinition(
                name=CommandType.UNINSTALL,
                description="Removes the version store, desktop entry and alias",
                handler=self._handle_uninstall,
                aliases=("-I", "--uninstall"),
            ),
            CommandDefinition(
                name=CommandType.UPDATE_SCRIPT,
                description="Updates cvm to the latest release",
                handler=self._handle_update_script,
                aliases=("-s", "--update-script"),
            ),
            CommandDefinition(
                name=CommandType.VERSION,
                description="Shows the current and latest versions of cvm and Cursor",
                handler=self._handle_version,
                aliases=("-v", "--version"),
            ),
            CommandDefinition(
                name=CommandType.HELP,
                description="Shows this message",
                handler=self._handle_help,
                aliases=("-h", "--help"),
                needs_context=False,
            ),
        ]
        self._commands = {definition.name: definition for definition in definitions}
        self._aliases = {
            alias: definition.name
            for definition in definitions
            for alias in definition.aliases
        }

    def get_commands(self) -> List[CommandDefinition]:
        """Get all registered commands."""
        return list(self._commands.values())

    def get_command(self, name: str) -> Optional[CommandDefinition]:
        """Get a command by name or alias."""
        return self._commands.get(self._aliases.get(name, name))

    @property
    def ctx(self) -> CvmContext:
        if self.context is None:
            raise RuntimeError("Command context has not been prepared")
        return self.context

    def _print_usage(self, name: str) -> int:
        command = self._commands[name]
        print(f"Usage: cvm {command.name} {command.usage}")
        return 1

    def _ensure_shell_supported(self) -> bool:
        if is_shell_supported():
            return True
        print("Error: Unsupported shell. Please use bash, zsh, fish, or sh.")
        print(f"Currently using: {current_shell() or 'unknown'}")
        print("Open a github issue if you want to add support for your shell:")
        print(ISSUES_URL)
        return False

    def _download_and_activate(self, version: str) -> None:
        self.ctx.driver.download(version)
        self.ctx.selector.activate(version)

    def _handle_list_local(self, args: List[str]) -> int:
        """Handle the list-local command."""
        versions = self.ctx.store.list_installed()
        if not versions:
            print("  No versions installed.")
            return 0

        print(f"Locally available versions (using {self.ctx.package_format} packages):")
        for version in versions:
            marker = " (active)" if self.ctx.store.is_active(version) else ""
            print(f"  - {version}{marker}")
        return 0

    def _handle_list_remote(self, args: List[str]) -> int:
        """Handle the list-remote command."""
        print("Remote versions:")
        for version in self.ctx.catalog.list_versions():
            print(f"  - {version}")
        return 0

    def _handle_download(self, args: List[str]) -> int:
        """Handle the download command."""
        if not args:
            return self._print_usage(CommandType.DOWNLOAD)

        version = args[0]
        if not self.ctx.catalog.has_version(version):
            raise VersionNotAvailable(f"Version {version} not found for download.")

        if self.ctx.driver.is_installed(version):
            print(f"Version {version} already downloaded.")
        else:
            self.ctx.driver.download(version)
        print(f"To select the downloaded version, run `cvm use {version}`")
        return 0

    def _handle_update(self, args: List[str]) -> int:
        """Handle the update command."""
        latest = self.ctx.catalog.latest_version()

        if not self.ctx.store.list_installed():
            print("No Cursor versions found locally.")
            print(f"Downloading latest version {latest}...")
            self._download_and_activate(latest)
            print_color(GREEN, f"Downloaded and switched to version {latest}.")
            return 0

        if self.ctx.store.is_active(latest):
            print_color(GREEN, f"You are already running the latest version: {latest}")
            return 0

        if self.ctx.driver.is_installed(latest):
            print(f"Latest version {latest} is already downloaded.")
            self.ctx.selector.activate(latest)
            print_color(GREEN, f"Switched to version {latest}.")
        else:
            print(f"Downloading latest version {latest}...")
            self._download_and_activate(latest)
            print_color(GREEN, f"Downloaded and switched to version {latest}.")
        return 0

    def _handle_use(self, args: List[str]) -> int:
        """Handle the use command."""
        if not args:
            return self._print_usage(CommandType.USE)

        version = args[0]
        executable = self.ctx.selector.activate(version)
        logger.debug(f"Activated {executable}")
        print_color(
            GREEN,
            f"Switched to {APP_DISPLAY_NAME} {version} ({self.ctx.package_format}).",
        )
        return 0

    def _handle_active(self, args: List[str]) -> int:
        """Handle the active command."""
        active = self.ctx.store.active_version()
        if active is None:
            print("None")
            return 0
        if active.kind is ActiveKind.UNPARSEABLE:
            raise CvmError(
                f"Could not determine version from active symlink: {active.target}"
            )
        print(active.display_text)
        return 0

    def _handle_remove(self, args: List[str]) -> int:
        """Handle the remove command; each version is removed independently."""
        if not args:
            return self._print_usage(CommandType.REMOVE)

        store = self.ctx.store
        label = self.ctx.package_format.label
        failures = 0
        for version in args:
            if not self.ctx.driver.is_installed(version):
                print_color(ORANGE, f"! Version {version} not found locally. Skipping...")
                continue

            was_active = store.is_active(version)
            print(f"Removing {label} files for version {version}...")
            try:
                store.remove(version)
            except OSError as e:
                logger.error(f"Failed to remove version {version}: {e}")
                print_color(ORANGE, f"! Failed to remove version {version}: {e}")
                failures += 1
                continue

            if was_active:
                print_color(GREEN, "✓ Removed active symlink")
            print_color(GREEN, f"✓ Successfully removed version {version}")

        if not self.ctx.paths.active_link.is_symlink():
            if store.has_any_installations():
                print(
                    "No active version selected. To activate one, run: "
                    "cvm use <version> (see `cvm list-local`)."
                )
            else:
                print("No Cursor versions installed.")
        return 1 if failures else 0

    def _prompt_yes_no(self, question: str) -> bool:
        try:
            response = self._input(f"{question} (y/N): ")
        except EOFError:
            return False
        return response.strip().lower() in ("y", "yes")

    def _integrate(self) -> None:
        """Set up the icon, desktop entry and shell alias."""
        paths = self.ctx.paths
        if not setup_assets(paths):
            print("Warning: Failed to setup assets, but continuing with installation")
        try:
            create_desktop_entry(paths)
        except OSError as e:
            logger.warning(f"Failed to create desktop entry: {e}")
            print("Warning: Failed to create desktop entry, but continuing with installation")

        print("Setting up shell alias...")
        setup_alias(paths, self.ctx.package_format)
        print("Alias added. You can now use 'cursor' to run Cursor.")
        print(reload_hint())

    def _handle_install(self, args: List[str]) -> int:
        """Handle the install command."""
        if not self._ensure_shell_supported():
            return 1

        driver = self.ctx.driver
        if args:
            version = args[0]
            if not driver.is_installed(version):
                if not self.ctx.catalog.has_version(version):
                    raise VersionNotAvailable(f"Version {version} not found for download.")
                print(f"Version {version} is not downloaded locally.")
                if not self._prompt_yes_no("Would you like to download it now?"):
                    print(
                        "Installation cancelled. Please download the version first "
                        f"with 'cvm download {version}'"
                    )
                    return 1
                driver.download(version)
        else:
            version = self.ctx.catalog.latest_version()
            if not driver.is_installed(version):
                driver.download(version)

        self.ctx.selector.activate(version)
        print(f"{APP_DISPLAY_NAME} {version} installed and activated.")
        self._integrate()
        return 0

    def _handle_uninstall(self, args: List[str]) -> int:
        """Handle the uninstall command."""
        if not self._ensure_shell_supported():
            return 1

        paths = self.ctx.paths
        if paths.root.exists():
            shutil.rmtree(paths.root)
            print(f"Removed {paths.root}")

        if remove_desktop_entry():
            print("Desktop entry removed.")

        changed = remove_alias(paths)
        if changed is not None:
            print(f"Alias removed from {changed}")
            if current_shell() != "fish":
                print(reload_hint())

        print("Cursor version manager uninstalled.")
        return 0

    def _handle_update_script(self, args: List[str]) -> int:
        """Handle the update-script command."""
        version = update_tool()
        print_color(GREEN, f"Successfully updated to version {version}")
        print("Please run cvm again to use the new version")
        return 0

    def _print_tool_version(self) -> None:
        print("Cursor Version Manager (cvm):")
        print(f"  - Current version: {__version__}")
        try:
            latest_tool = get_latest_tool_version()
        except SelfUpdateError as e:
            logger.debug(f"Could not check for the latest cvm version: {e}")
            print("Failed to check for latest cvm version")
            return

        if latest_tool != __version__:
            print(f"  - Latest version: {latest_tool}")
            print_color(ORANGE, "There is a newer cvm version available for download!")
            print_color(ORANGE, "You can update it with: cvm update-script")
        else:
            print_color(GREEN, "You are running the latest cvm version!")

    def _handle_version(self, args: List[str]) -> int:
        """Handle the version command."""
        self._print_tool_version()

        store = self.ctx.store
        print("")
        print("Cursor App Information:")
        print(f"  - Package type: {self.ctx.package_format}")
        latest_remote = self.ctx.catalog.latest_version()
        print(f"  - Latest remote version: {latest_remote}")

        if not store.has_any_installations():
            print("  - No local Cursor installation found")
            print_color(ORANGE, "To install Cursor, run: cvm install")
            return 0

        latest_local = store.latest_installed()
        active = store.active_version()
        print(f"  - Latest locally available: {latest_local or 'None'}")
        print(f"  - Currently active: {active.display_text if active else 'None'}")

        if latest_local is None or active is None:
            return 0
        if latest_remote != latest_local:
            print_color(ORANGE, "There is a newer Cursor version available for download!")
            print_color(ORANGE, "You can download and activate it with `cvm update`")
        elif not store.is_active(latest_remote):
            print_color(ORANGE, "There is a newer Cursor version already installed!")
            print_color(ORANGE, f"You can activate it with `cvm use {latest_remote}`")
        else:
            print_color(GREEN, "You are running the latest Cursor version!")
        return 0

    def format_help(self) -> str:
        """Build the help text listing every command."""
        lines = [
            f"cvm v{__version__} - Cursor version manager",
            "",
            "Usage: cvm <command> [arguments]",
            "",
            "Examples:",
            "  cvm version",
            "  cvm list-local",
            "  cvm use 1.4.4",
            "",
            "Notice:",
            "  Packages are downloaded from the official Cursor releases.",
            "  Package type is auto-detected (deb/rpm/appimage) or can be set "
            f"with {PACKAGE_TYPE_ENV}.",
            "",
            "Commands:",
        ]
        for command in self.get_commands():
            signature = f"{command.name} {command.usage}".strip()
            aliases = ", ".join(command.aliases)
            lines.append(f"  {signature:<26} {command.description} ({aliases})")
        return "\n".join(lines)

    def _handle_help(self, args: List[str]) -> int:
        """Handle the help command."""
        print(self.format_help())
        return 0
