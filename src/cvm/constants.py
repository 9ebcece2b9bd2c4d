"""
Constants for cvm (Cursor version manager).
"""

__version__ = "1.2.1"

# Application being managed
APP_NAME = "cursor"
APP_DISPLAY_NAME = "Cursor"

# Store layout
DEFAULT_STORE_DIR = "~/.local/share/cvm"
APPIMAGE_SUBDIR = "app-images"
RPM_SUBDIR = "rpms"
DEB_SUBDIR = "debs"
ASSETS_SUBDIR = "assets"
ACTIVE_LINK_NAME = "active"
ICON_FILENAME = "cursor.png"
DESKTOP_ENTRY_PATH = "~/.local/share/applications/cursor.desktop"

# Remote sources
VERSION_HISTORY_URL = "https://raw.githubusercontent.com/oslook/cursor-ai-downloads/refs/heads/main/version-history.json"
GITHUB_API_URL = "https://api.github.com/repos/dagimg-dot/cvm/releases/latest"
CURSOR_ICON_URL = "https://raw.githubusercontent.com/dagimg-dot/cvm/main/assets/cursor.png"
SCRIPT_ASSET_NAME = "cvm.pyz"

# Catalog cache
CACHE_FILE_PATH = "/tmp/cursor_versions.json"
CACHE_MAX_AGE_MINUTES = 15

# Executable search inside extracted native packages
MAX_SEARCH_DEPTH = 8

# Environment overrides
PACKAGE_TYPE_ENV = "CVM_PACKAGE_TYPE"
DEBUG_ENV = "CVM_DEBUG"

# Terminal colors
GREEN = "\033[0;32m"
ORANGE = "\033[0;33m"
NC = "\033[0m"
