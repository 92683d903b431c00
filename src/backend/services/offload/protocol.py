"""Message shapes exchanged with the sampling worker.

Messages are plain JSON-serialisable dicts. Field names and the ``type``
values below are the wire contract; every request carries an ``id`` that
the worker echoes on its progress, result and error messages.
"""

from __future__ import annotations
import math
import uuid
from typing import Any, Mapping, Optional

# Requests (caller -> worker)
SAMPLE = "sample"
BATCH = "batch"
BENCHMARK = "benchmark"
ANALYZE = "analyze"
ALIGN = "align"
STATISTICS = "statistics"
REQUEST_TYPES = (SAMPLE, BATCH, BENCHMARK, ANALYZE, ALIGN, STATISTICS)

# Events (worker -> caller)
READY = "ready"
PROGRESS = "progress"
RESULT = "result"
ERROR = "error"
TERMINAL_TYPES = (RESULT, ERROR)


class OffloadError(RuntimeError):
    """Base class for failures of the offloaded execution path."""


class WorkerNotReadyError(OffloadError):
    """The worker could not be started."""


class WorkerTerminatedError(OffloadError):
    """The worker was terminated while the request was pending."""

    def __init__(self, message: str = "Worker terminated") -> None:
        super().__init__(message)


class WorkerRequestError(OffloadError):
    """The worker answered a request with an ``error`` message."""

    def __init__(self, message: str, request_type: Optional[str] = None) -> None:
        super().__init__(message)
        self.request_type = request_type


def new_request_id() -> str:
    return uuid.uuid4().hex


def make_request(request_type: str, request_id: Optional[str] = None, **fields: Any) -> dict[str, Any]:
    if request_type not in REQUEST_TYPES:
        raise ValueError(f"Unknown request type: {request_type!r}")
    return {"type": request_type, "id": request_id or new_request_id(), **fields}


def ready_message(algorithms) -> dict[str, Any]:
    return {
        "type": READY,
        "message": "Sampling worker initialized and ready",
        "algorithms": list(algorithms),
    }


def progress_message(request_id: str, completed: int, total: int) -> dict[str, Any]:
    percentage = int(math.floor(completed / total * 100 + 0.5)) if total else 100
    return {
        "type": PROGRESS,
        "id": request_id,
        "completed": completed,
        "total": total,
        "percentage": percentage,
    }


def result_message(request_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {"type": RESULT, "id": request_id, **payload}


def error_message(request_id: Optional[str], error: str) -> dict[str, Any]:
    return {"type": ERROR, "id": request_id, "error": error}


def clone(value: Any) -> Any:
    """Structural copy of a JSON-like payload; mappings become plain dicts."""
    if isinstance(value, Mapping):
        return {key: clone(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [clone(item) for item in value]
    return value


def strip_envelope(message: dict[str, Any]) -> dict[str, Any]:
    """Response payload without the ``type``/``id`` envelope fields."""
    return {k: v for k, v in message.items() if k not in ("type", "id")}


__all__ = [
    "ALIGN",
    "ANALYZE",
    "BATCH",
    "BENCHMARK",
    "ERROR",
    "OffloadError",
    "PROGRESS",
    "READY",
    "REQUEST_TYPES",
    "RESULT",
    "SAMPLE",
    "STATISTICS",
    "TERMINAL_TYPES",
    "WorkerNotReadyError",
    "WorkerRequestError",
    "WorkerTerminatedError",
    "clone",
    "error_message",
    "make_request",
    "new_request_id",
    "progress_message",
    "ready_message",
    "result_message",
    "strip_envelope",
]
