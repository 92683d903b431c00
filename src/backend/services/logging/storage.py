from __future__ import annotations
import threading
from pathlib import Path
from typing import Optional

from core.paths import get_log_directory

_text_log_lock = threading.RLock()
_log_directory: Optional[Path] = None


def set_log_directory(path: Optional[Path]) -> None:
    """Redirect text logs to ``path``; ``None`` restores the default folder."""
    global _log_directory
    with _text_log_lock:
        _log_directory = Path(path) if path is not None else None


def default_log_directory() -> Path:
    with _text_log_lock:
        folder = _log_directory
    if folder is None:
        return get_log_directory()
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def warning_log_path() -> Path:
    return default_log_directory() / "warnings.log"


def error_log_path() -> Path:
    return default_log_directory() / "errors.log"


def crash_log_path() -> Path:
    return default_log_directory() / "crash.log"


def append_text_log(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with _text_log_lock:
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line.rstrip("\n") + "\n")


__all__ = [
    "append_text_log",
    "crash_log_path",
    "default_log_directory",
    "error_log_path",
    "set_log_directory",
    "warning_log_path",
]
