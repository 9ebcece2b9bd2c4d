"""
Desktop integration for cvm.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .constants import (
    APP_DISPLAY_NAME,
    CURSOR_ICON_URL,
    DESKTOP_ENTRY_PATH,
    ICON_FILENAME,
)
from .models import StorePaths

# Set up logging
logger = logging.getLogger(__name__)

NEW_WINDOW_NAMES = {
    "de": "Neues leeres Fenster",
    "es": "Nueva ventana vacía",
    "fr": "Nouvelle fenêtre vide",
    "it": "Nuova finestra vuota",
    "ja": "新しい空のウィンドウ",
    "ko": "새 빈 창",
    "ru": "Новое пустое окно",
    "zh_CN": "新建空窗口",
    "zh_TW": "開新空視窗",
}


def desktop_entry_path() -> Path:
    return Path(DESKTOP_ENTRY_PATH).expanduser()


def icon_path(paths: StorePaths) -> Path:
    return paths.assets_dir / ICON_FILENAME


def setup_assets(paths: StorePaths, url: str = CURSOR_ICON_URL) -> bool:
    """Download the application icon unless it is already present.

    A failed download is reported as a warning; the desktop entry is then
    created without an icon.
    """
    icon = icon_path(paths)
    if icon.is_file():
        logger.debug(f"Icon already exists at {icon}")
        return True

    icon.parent.mkdir(parents=True, exist_ok=True)
    cmd = ["curl", "-L", "-s", "-S", "-f", "-o", str(icon), url]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        result = None

    if result is None or result.returncode != 0:
        icon.unlink(missing_ok=True)
        logger.warning(
            "Failed to download icon. Desktop entry will be created without icon."
        )
        return False

    logger.debug(f"Downloaded icon to {icon}")
    return True


def render_desktop_entry(paths: StorePaths, icon: Optional[Path] = None) -> str:
    """Build the contents of the desktop entry file."""
    executable = paths.active_link
    icon_line = f"Icon={icon}\n" if icon is not None else ""

    entry = (
        "[Desktop Entry]\n"
        f"Name={APP_DISPLAY_NAME}\n"
        "Comment=The AI Code Editor.\n"
        "GenericName=Text Editor\n"
        f"Exec={executable}\n"
        f"{icon_line}"
        "Type=Application\n"
        "StartupNotify=false\n"
        f"StartupWMClass={APP_DISPLAY_NAME}\n"
        "Categories=TextEditor;Development;IDE;\n"
        "MimeType=application/x-cursor-workspace;\n"
        "Actions=new-empty-window;\n"
        "Keywords=cursor;\n"
        "\n"
        "[Desktop Action new-empty-window]\n"
        "Name=New Empty Window\n"
    )
    for locale, name in NEW_WINDOW_NAMES.items():
        entry += f"Name[{locale}]={name}\n"
    entry += f"Exec={executable} --new-window %F\n"
    entry += icon_line
    return entry


def create_desktop_entry(paths: StorePaths, entry_path: Optional[Path] = None) -> Path:
    """Write the desktop entry launching the active version."""
    target = entry_path or desktop_entry_path()
    target.parent.mkdir(parents=True, exist_ok=True)

    icon = icon_path(paths)
    target.write_text(
        render_desktop_entry(paths, icon if icon.is_file() else None),
        encoding="utf-8",
    )
    logger.debug(f"Desktop entry created at {target}")
    return target


def remove_desktop_entry(entry_path: Optional[Path] = None) -> bool:
    """Delete the desktop entry, returning whether one existed."""
    target = entry_path or desktop_entry_path()
    if not target.is_file():
        return False
    target.unlink()
    return True
