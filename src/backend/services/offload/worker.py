from __future__ import annotations
import logging
import queue
import threading
from typing import Any, Callable, Optional

from backend.models.options import SAMPLING_ALGORITHMS
from backend.services.alignment_service import align_series
from backend.services.sampling.engine import (
    analyze_data,
    batch_sample,
    benchmark_sampling,
    calculate_data_statistics,
    run_sampling,
)

from . import protocol

logger = logging.getLogger(__name__)

MessageSink = Callable[[dict], None]

_STOP = object()


def handle_request(message: dict[str, Any], emit: Optional[MessageSink] = None) -> dict[str, Any]:
    """Execute one request and return its result payload (without envelope).

    ``emit`` receives progress messages for long batches. Raises on unknown
    request types; the worker turns exceptions into ``error`` messages.
    """
    kind = message.get("type")
    request_id = message.get("id")

    if kind == protocol.SAMPLE:
        return run_sampling(message.get("data") or [], message.get("config")).to_dict()

    if kind == protocol.BATCH:
        def on_progress(completed: int, total: int) -> None:
            if emit is not None:
                emit(protocol.progress_message(request_id, completed, total))

        result = batch_sample(
            message.get("datasets") or [],
            message.get("configs") or [],
            progress_callback=on_progress,
        )
        return {"success": True, **result.to_dict()}

    if kind == protocol.BENCHMARK:
        config = message.get("config") or {}
        target = message.get("targetPoints", config.get("targetPoints", 800))
        report = benchmark_sampling(
            message.get("data") or [],
            message.get("algorithms"),
            int(target),
            x_key=config.get("xKey") or "x",
            y_key=config.get("yKey") or "value",
        )
        return {"success": True, "results": {name: entry.to_dict() for name, entry in report.items()}}

    if kind == protocol.ANALYZE:
        analysis = analyze_data(message.get("data") or [], _y_key(message))
        return {"success": True, **analysis.to_dict()}

    if kind == protocol.STATISTICS:
        stats = calculate_data_statistics(message.get("data") or [], _y_key(message))
        return {"success": True, **stats.to_dict()}

    if kind == protocol.ALIGN:
        aligned = align_series(
            message.get("lines") or [],
            float(message.get("sampleRate") or 0.1),
            message.get("xKey") or "date",
        )
        return {"success": True, **aligned.to_dict()}

    raise ValueError(f"Unknown operation type: {kind}")


def _y_key(message: dict[str, Any]) -> str:
    config = message.get("config") or {}
    return message.get("yKey") or config.get("yKey") or "value"


class SamplingWorker(threading.Thread):
    """Background thread that serves sampling requests in receipt order.

    All outgoing messages (``ready`` first, then progress/result/error) are
    delivered through ``sink`` on this thread.
    """

    def __init__(self, sink: MessageSink, *, name: str = "sampling-worker") -> None:
        super().__init__(name=name, daemon=True)
        self._sink = sink
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._stopping = threading.Event()

    def post(self, message: dict[str, Any]) -> None:
        """Queue a request. Payloads must already be private copies."""
        if self._stopping.is_set():
            return
        self._inbox.put(message)

    def stop(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        self._stopping.set()
        self._inbox.put(_STOP)
        if wait and self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)

    def run(self) -> None:
        logger.debug("Sampling worker started")
        self._emit(protocol.ready_message(SAMPLING_ALGORITHMS))
        while True:
            message = self._inbox.get()
            if message is _STOP or self._stopping.is_set():
                break
            self._process(message)
        logger.debug("Sampling worker stopped")

    def _process(self, message: dict[str, Any]) -> None:
        request_id = message.get("id")
        try:
            payload = handle_request(message, self._emit)
        except Exception as exc:
            logger.exception("Sampling worker request %s (%s) failed", request_id, message.get("type"))
            self._emit(protocol.error_message(request_id, str(exc)))
            return
        self._emit(protocol.result_message(request_id, payload))

    def _emit(self, message: dict[str, Any]) -> None:
        if self._stopping.is_set() and message.get("type") != protocol.READY:
            return
        try:
            self._sink(message)
        except Exception:
            logger.exception("Sampling worker message sink raised")


__all__ = ["SamplingWorker", "handle_request"]
