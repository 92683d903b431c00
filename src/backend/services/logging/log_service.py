from __future__ import annotations
import logging
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional

from .storage import append_text_log, error_log_path, warning_log_path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LogEvent:
    """Container describing a single log entry relayed to listeners."""

    message: str
    level: int
    logger_name: str
    created: float
    origin: str
    formatted: str


Listener = Callable[[LogEvent], None]


class LogService(logging.Handler):
    """Central logging handler that relays log messages to registered listeners.

    WARNING+ records are appended to ``warnings.log`` and ERROR+ records to
    ``errors.log``. The most recent events are kept in memory for late
    subscribers (for example a log panel opened after startup).
    """

    def __init__(self, *, history_size: int = 1000, persist: bool = True) -> None:
        super().__init__(level=logging.NOTSET)
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()
        self._formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        self._history: Deque[LogEvent] = deque(maxlen=max(1, int(history_size)))
        self._persist = persist
        self._installed_on: set[str] = set()
        self._shutdown = False

    # ------------------------------------------------------------------
    def emit(self, record: logging.LogRecord) -> None:
        try:
            formatted = self._formatter.format(record)
        except Exception:  # pragma: no cover - mirrors logging.Handler
            self.handleError(record)
            return
        event = LogEvent(
            message=record.getMessage(),
            level=record.levelno,
            logger_name=record.name,
            created=record.created,
            origin="logging",
            formatted=formatted,
        )
        self._record(event)

    def log_text(self, message: str, *, level: int = logging.INFO, origin: str = "app") -> None:
        """Record a free-form message that did not go through ``logging``."""
        clean_message = message.rstrip("\n")
        if not clean_message:
            return
        created = time.time()
        record = logging.LogRecord(
            name=origin,
            level=level,
            pathname="",
            lineno=0,
            msg=clean_message,
            args=(),
            exc_info=None,
        )
        record.created = created
        event = LogEvent(
            message=clean_message,
            level=level,
            logger_name=origin,
            created=created,
            origin=origin,
            formatted=self._formatter.format(record),
        )
        self._record(event)

    # ------------------------------------------------------------------
    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def recent_events(self, limit: Optional[int] = None) -> List[LogEvent]:
        with self._lock:
            events = list(self._history)
        return events if limit is None else events[-limit:]

    # ------------------------------------------------------------------
    def install_on_logger(self, target: logging.Logger) -> None:
        """Attach the handler to ``target`` if not already present."""
        with self._lock:
            if self not in target.handlers:
                target.addHandler(self)
            target.propagate = False
            self._installed_on.add(target.name)

    def uninstall_from_logger(self, target: logging.Logger) -> None:
        with self._lock:
            if self in target.handlers:
                target.removeHandler(self)
            self._installed_on.discard(target.name)

    def shutdown(self) -> None:
        """Stop notifying listeners; records are still written to the text logs."""
        with self._lock:
            self._shutdown = True
            self._listeners.clear()

    # ------------------------------------------------------------------
    def _record(self, event: LogEvent) -> None:
        with self._lock:
            self._history.append(event)
        if self._persist:
            self._persist_event(event)
        self._notify(event)

    def _notify(self, event: LogEvent) -> None:
        if self._shutdown:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                _safe_print_exception()

    def _persist_event(self, event: LogEvent) -> None:
        try:
            if int(event.level) >= int(logging.WARNING):
                append_text_log(warning_log_path(), event.formatted)
            if int(event.level) >= int(logging.ERROR):
                append_text_log(error_log_path(), event.formatted)
        except Exception:
            _safe_print_exception()


def _safe_print_exception() -> None:  # pragma: no cover - best effort
    # Logging cannot be used here: the failure came from the log pipeline.
    import traceback

    stream = getattr(sys, "__stderr__", None) or getattr(sys, "__stdout__", None)
    if stream is not None:
        traceback.print_exc(file=stream)


_service = LogService()


def get_log_service() -> LogService:
    return _service


__all__ = ["DATE_FORMAT", "LOG_FORMAT", "LogEvent", "LogService", "get_log_service"]
