"""
Path resolution for FastLine's per-user files (settings and logs).

``FASTLINE_DATA_DIR`` overrides the platform default, which keeps tests and
portable installs away from the user's real profile.
"""

import os
import sys
from pathlib import Path

APP_NAME = "FastLine"
DATA_DIR_ENV = "FASTLINE_DATA_DIR"


def _get_user_data_path() -> Path:
    """
    Get the user data directory.

    On Windows: %LOCALAPPDATA%/FastLine
    On macOS: ~/Library/Application Support/FastLine
    On Linux: ~/.local/share/FastLine
    """
    override = os.getenv(DATA_DIR_ENV)
    if override:
        return Path(override)
    if os.name == "nt":
        base = Path(os.getenv("LOCALAPPDATA", Path.home()))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".local" / "share"
    return base / APP_NAME


def get_user_data_directory() -> Path:
    directory = _get_user_data_path()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_log_directory() -> Path:
    """Folder holding warnings.log, errors.log and crash.log. Created on demand."""
    folder = _get_user_data_path() / "logs"
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def get_settings_file_path() -> Path:
    """INI file used when settings are stored outside the native registry."""
    return get_user_data_directory() / "settings.ini"


__all__ = [
    "APP_NAME",
    "DATA_DIR_ENV",
    "get_log_directory",
    "get_settings_file_path",
    "get_user_data_directory",
]
