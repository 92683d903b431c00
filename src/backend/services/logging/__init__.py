"""Logging utilities available to both backend and frontend."""

from .log_service import LogEvent, LogService, get_log_service
from .logging_setup import APP_LOGGER_NAME, configure_logging, install_global_exception_hooks
from .storage import (
    crash_log_path,
    default_log_directory,
    error_log_path,
    set_log_directory,
    warning_log_path,
)

__all__ = [
    "APP_LOGGER_NAME",
    "LogEvent",
    "LogService",
    "configure_logging",
    "crash_log_path",
    "default_log_directory",
    "error_log_path",
    "get_log_service",
    "install_global_exception_hooks",
    "set_log_directory",
    "warning_log_path",
]
