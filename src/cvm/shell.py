"""
Shell integration for cvm.

Adds or removes the `cursor` alias that runs the active version.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .constants import APP_NAME
from .models import PackageFormat, StorePaths

# Set up logging
logger = logging.getLogger(__name__)

SUPPORTED_SHELLS = ("sh", "dash", "bash", "zsh", "fish")

# Startup file the alias line is appended to, per shell
RC_FILES: Dict[str, str] = {
    "sh": ".profile",
    "dash": ".profile",
    "bash": ".bashrc",
    "zsh": ".zshrc",
}

FISH_FUNCTION_PATH = f".config/fish/functions/{APP_NAME}.fish"


def current_shell(shell_path: Optional[str] = None) -> str:
    """Get the name of the user's shell from $SHELL."""
    value = shell_path if shell_path is not None else os.environ.get("SHELL", "")
    return os.path.basename(value)


def is_shell_supported(shell: Optional[str] = None) -> bool:
    return (shell or current_shell()) in SUPPORTED_SHELLS


def alias_line(paths: StorePaths) -> str:
    return f"alias {APP_NAME}='{paths.active_link}'"


def fish_function(paths: StorePaths, package_format: PackageFormat) -> str:
    """Build the contents of the fish function file."""
    if package_format is PackageFormat.APPIMAGE:
        # AppImages need --no-sandbox and are started detached
        return (
            f"function {APP_NAME}\n"
            f"    nohup {paths.active_link} $argv --no-sandbox </dev/null >/dev/null 2>&1 &\n"
            "    disown\n"
            "end\n"
        )
    return f"{alias_line(paths)}\n"


def setup_alias(
    paths: StorePaths,
    package_format: PackageFormat,
    shell: Optional[str] = None,
    home: Optional[Path] = None,
) -> Path:
    """Install the alias for the user's shell, returning the file written."""
    shell = shell or current_shell()
    home = home or Path.home()

    if shell == "fish":
        function_file = home / FISH_FUNCTION_PATH
        function_file.parent.mkdir(parents=True, exist_ok=True)
        function_file.write_text(fish_function(paths, package_format))
        logger.debug(f"Wrote fish function {function_file}")
        return function_file

    rc_name = RC_FILES.get(shell)
    if rc_name is None:
        raise ValueError(f"Unsupported shell: {shell}")

    rc_file = home / rc_name
    line = alias_line(paths)
    existing = rc_file.read_text() if rc_file.exists() else ""
    if line in existing.splitlines():
        logger.debug(f"Alias already present in {rc_file}")
        return rc_file

    with open(rc_file, "a") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(f"{line}\n")
    logger.debug(f"Appended alias to {rc_file}")
    return rc_file


def remove_alias(
    paths: StorePaths,
    shell: Optional[str] = None,
    home: Optional[Path] = None,
) -> Optional[Path]:
    """Remove the alias for the user's shell, returning the file changed."""
    shell = shell or current_shell()
    home = home or Path.home()

    if shell == "fish":
        function_file = home / FISH_FUNCTION_PATH
        if not function_file.is_file():
            return None
        function_file.unlink()
        return function_file

    rc_name = RC_FILES.get(shell)
    if rc_name is None:
        return None

    rc_file = home / rc_name
    if not rc_file.is_file():
        return None

    line = alias_line(paths)
    lines = rc_file.read_text().splitlines(keepends=True)
    kept = [existing for existing in lines if existing.rstrip("\n") != line]
    if len(kept) == len(lines):
        return None

    rc_file.write_text("".join(kept))
    return rc_file


def reload_hint(shell: Optional[str] = None) -> str:
    """Get the message telling the user how to apply the alias."""
    shell = shell or current_shell()
    match shell:
        case "sh" | "dash":
            return "Run '. ~/.profile' to apply the changes or restart your shell."
        case "bash" | "zsh":
            return f"Run 'source ~/{RC_FILES[shell]}' to apply the changes or restart your shell."
        case "fish":
            return (
                f"The {APP_NAME} function has been added in ~/{FISH_FUNCTION_PATH}. "
                "You can use it immediately."
            )
        case _:
            return "Restart your shell to apply the changes."
