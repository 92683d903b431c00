import logging
import sys
import threading
import traceback

from .log_service import get_log_service
from .storage import append_text_log, crash_log_path

APP_LOGGER_NAME = "FastLine"


def configure_logging(level: int = logging.INFO, *, name: str = APP_LOGGER_NAME) -> logging.Logger:
    """Create or fetch the application logger with the LogService attached.

    Package loggers (``core``, ``backend``, ``frontend``) are routed to the
    same handler so module-level ``logging.getLogger(__name__)`` calls are
    captured without extra setup.
    """
    service = get_log_service()
    app_logger = logging.getLogger(name)
    app_logger.setLevel(level)
    service.install_on_logger(app_logger)
    for package in ("core", "backend", "frontend"):
        package_logger = logging.getLogger(package)
        if package_logger.level == logging.NOTSET or package_logger.level > level:
            package_logger.setLevel(level)
        service.install_on_logger(package_logger)
    return app_logger


def install_global_exception_hooks() -> None:
    """Route uncaught exceptions (main and worker threads) to the log and crash.log."""

    def _handle_exception(exc_type, exc_value, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logging.getLogger(f"{APP_LOGGER_NAME}.unhandled").critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_tb),
        )
        try:
            text = "".join(traceback.format_exception(exc_type, exc_value, exc_tb)).rstrip("\n")
            append_text_log(crash_log_path(), text)
        except OSError:
            traceback.print_exception(exc_type, exc_value, exc_tb, file=sys.__stderr__)

    def _handle_thread_exception(args: threading.ExceptHookArgs) -> None:
        _handle_exception(args.exc_type, args.exc_value, args.exc_traceback)

    sys.excepthook = _handle_exception
    threading.excepthook = _handle_thread_exception


__all__ = ["APP_LOGGER_NAME", "configure_logging", "install_global_exception_hooks"]
