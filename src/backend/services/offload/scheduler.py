"""Caller-side half of the sampling worker protocol.

:class:`SamplingWorkerManager` turns requests into :class:`concurrent.futures.Future`
objects correlated by request id. Requests submitted before the worker has
announced ``ready`` wait in a backlog. Futures complete on the worker thread;
UI code should marshal follow-up work back to its own thread.
"""

from __future__ import annotations
import logging
import threading
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from backend.models.options import DEFAULT_OFFLOAD_THRESHOLD, SamplingConfig
from backend.services.sampling.engine import get_optimal_sampling_config, sample_data
from core.cache import FifoCache, fingerprint

from . import protocol
from .protocol import WorkerNotReadyError, WorkerRequestError, WorkerTerminatedError
from .worker import SamplingWorker

logger = logging.getLogger(__name__)

ProgressListener = Callable[[dict], None]
WorkerFactory = Callable[[Callable[[dict], None]], Any]
ConfigLike = Union[SamplingConfig, Mapping[str, Any], None]


@dataclass
class _PendingRequest:
    request_type: str
    future: Future
    on_progress: Optional[ProgressListener] = None


def _settle(future: Future, *, result: Any = None, error: Optional[BaseException] = None) -> None:
    if future.done():
        return
    try:
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
    except InvalidStateError:
        # Cancelled by the caller between the check and the assignment.
        pass


def _config_dict(config: ConfigLike) -> dict[str, Any]:
    if isinstance(config, SamplingConfig):
        return config.to_dict()
    return dict(config or {})


class SamplingWorkerManager:
    def __init__(self, *, worker_factory: Optional[WorkerFactory] = None, autostart: bool = True) -> None:
        self._worker_factory = worker_factory or SamplingWorker
        self._lock = threading.RLock()
        self._pending: dict[str, _PendingRequest] = {}
        self._backlog: list[dict[str, Any]] = []
        self._ready = threading.Event()
        self._worker = None
        self._start_error: Optional[WorkerNotReadyError] = None
        self._terminated = False
        if autostart:
            self.start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Start the worker thread; returns ``False`` when it cannot be started."""
        with self._lock:
            if self._worker is not None or self._terminated:
                return self._worker is not None
            try:
                worker = self._worker_factory(self._on_message)
                worker.start()
            except Exception as exc:
                logger.exception("Failed to start sampling worker")
                self._start_error = WorkerNotReadyError(f"Sampling worker failed to start: {exc}")
                return False
            self._worker = worker
            self._start_error = None
            logger.info("Sampling worker starting")
            return True

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set() and not self._terminated

    @property
    def is_available(self) -> bool:
        """``True`` while the worker is running or starting up."""
        return self._worker is not None and not self._terminated

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def terminate(self) -> None:
        """Stop the worker and reject every pending request."""
        with self._lock:
            if self._terminated:
                return
            self._terminated = True
            pending = list(self._pending.values())
            self._pending.clear()
            self._backlog.clear()
            worker, self._worker = self._worker, None
        if worker is not None:
            worker.stop()
        for request in pending:
            _settle(request.future, error=WorkerTerminatedError())
        logger.info("Sampling worker terminated (%d pending requests rejected)", len(pending))

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def submit(
        self,
        request_type: str,
        payload: Optional[Mapping[str, Any]] = None,
        *,
        on_progress: Optional[ProgressListener] = None,
    ) -> Future:
        """Send one request; the returned future resolves to the response payload."""
        future: Future = Future()
        message = protocol.make_request(request_type, **protocol.clone(payload or {}))
        with self._lock:
            if self._terminated:
                _settle(future, error=WorkerTerminatedError())
                return future
            if self._worker is None:
                _settle(future, error=self._start_error or WorkerNotReadyError("Sampling worker is not running"))
                return future
            self._pending[message["id"]] = _PendingRequest(request_type, future, on_progress)
            if self._ready.is_set():
                self._worker.post(message)
            else:
                self._backlog.append(message)
        return future

    def sample(self, data: Sequence[Mapping[str, Any]], config: ConfigLike = None) -> Future:
        return self.submit(protocol.SAMPLE, {"data": list(data), "config": _config_dict(config)})

    def batch(
        self,
        datasets: Sequence[Sequence[Mapping[str, Any]]],
        configs: Sequence[ConfigLike],
        *,
        on_progress: Optional[ProgressListener] = None,
    ) -> Future:
        payload = {
            "datasets": [list(ds) for ds in datasets],
            "configs": [_config_dict(c) for c in configs],
        }
        return self.submit(protocol.BATCH, payload, on_progress=on_progress)

    def benchmark(
        self,
        data: Sequence[Mapping[str, Any]],
        algorithms: Optional[Iterable[str]] = None,
        target_points: int = 800,
    ) -> Future:
        payload = {
            "data": list(data),
            "algorithms": list(algorithms) if algorithms is not None else None,
            "targetPoints": target_points,
        }
        return self.submit(protocol.BENCHMARK, payload)

    def analyze(self, data: Sequence[Mapping[str, Any]], y_key: str = "value") -> Future:
        return self.submit(protocol.ANALYZE, {"data": list(data), "yKey": y_key})

    def statistics(self, data: Sequence[Mapping[str, Any]], y_key: str = "value") -> Future:
        return self.submit(protocol.STATISTICS, {"data": list(data), "yKey": y_key})

    def align(self, lines: Sequence[Mapping[str, Any]], sample_rate: float = 0.1, x_key: str = "date") -> Future:
        return self.submit(protocol.ALIGN, {"lines": list(lines), "sampleRate": sample_rate, "xKey": x_key})

    # ------------------------------------------------------------------
    # Worker -> caller
    # ------------------------------------------------------------------
    def _on_message(self, message: dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == protocol.READY:
            self._handle_ready()
            return

        request_id = message.get("id")
        if kind == protocol.PROGRESS:
            with self._lock:
                request = self._pending.get(request_id)
            if request is not None and request.on_progress is not None:
                try:
                    request.on_progress(protocol.strip_envelope(message))
                except Exception:
                    logger.warning("Progress listener for %s raised", request_id, exc_info=True)
            return

        if kind not in protocol.TERMINAL_TYPES:
            logger.warning("Ignoring worker message of unknown type %r", kind)
            return

        if request_id is None:
            # Uncorrelated worker error; nothing to settle.
            logger.error("Sampling worker error: %s", message.get("error"))
            return

        with self._lock:
            request = self._pending.pop(request_id, None)
        if request is None:
            logger.debug("Dropping response for unknown or settled request %s", request_id)
            return
        if kind == protocol.RESULT:
            payload = protocol.strip_envelope(message)
            if payload.get("success") is False:
                # Handled failures (e.g. run_sampling) come back as unsuccessful results.
                error = WorkerRequestError(str(payload.get("error") or "request failed"), request.request_type)
                _settle(request.future, error=error)
            else:
                _settle(request.future, result=payload)
        else:
            _settle(
                request.future,
                error=WorkerRequestError(str(message.get("error")), request.request_type),
            )

    def _handle_ready(self) -> None:
        with self._lock:
            if self._terminated or self._worker is None:
                return
            backlog, self._backlog = self._backlog, []
            self._ready.set()
            for message in backlog:
                self._worker.post(message)
        logger.info("Sampling worker ready (%d queued requests released)", len(backlog))


# ---------------------------------------------------------------------------
# Shared manager and safe entry points
# ---------------------------------------------------------------------------

_shared_manager: Optional[SamplingWorkerManager] = None
_shared_lock = threading.Lock()


def get_sampling_worker() -> SamplingWorkerManager:
    """Process-wide manager, created on first use."""
    global _shared_manager
    with _shared_lock:
        if _shared_manager is None or _shared_manager._terminated:
            _shared_manager = SamplingWorkerManager()
        return _shared_manager


def terminate_sampling_worker() -> None:
    global _shared_manager
    with _shared_lock:
        manager, _shared_manager = _shared_manager, None
    if manager is not None:
        manager.terminate()


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def sample_data_safe(
    data: Sequence[Mapping[str, Any]],
    config: ConfigLike = None,
    *,
    use_worker: bool = True,
    threshold: int = DEFAULT_OFFLOAD_THRESHOLD,
    manager: Optional[SamplingWorkerManager] = None,
) -> Future:
    """Sample ``data`` off-thread when it is large, otherwise inline.

    Any offload failure falls back to inline execution of the same algorithm,
    so the resolved value is always the sampled row list.
    """
    if len(data) < threshold or not use_worker:
        return _completed(sample_data(data, config))

    try:
        offload = (manager or get_sampling_worker()).sample(data, config)
    except Exception:
        logger.warning("Worker sampling failed, falling back to inline sampling", exc_info=True)
        return _completed(sample_data(data, config))

    outcome: Future = Future()

    def _done(f: Future) -> None:
        try:
            _settle(outcome, result=f.result()["data"])
        except Exception as exc:
            logger.warning("Worker sampling failed, falling back to inline sampling: %s", exc)
            try:
                _settle(outcome, result=sample_data(data, config))
            except Exception as inline_exc:
                _settle(outcome, error=inline_exc)

    offload.add_done_callback(_done)
    return outcome


class ChartSamplingManager:
    """Width-aware sampling with a bounded memo of previous results."""

    def __init__(
        self,
        *,
        manager: Optional[SamplingWorkerManager] = None,
        cache_size: int = 50,
        use_worker: bool = True,
        threshold: int = DEFAULT_OFFLOAD_THRESHOLD,
    ) -> None:
        self._manager = manager
        self._owns_manager = manager is None
        self._cache: FifoCache[str, list] = FifoCache(cache_size)
        self._use_worker = use_worker
        self._threshold = threshold

    @property
    def cache(self) -> FifoCache:
        return self._cache

    def _worker(self) -> Optional[SamplingWorkerManager]:
        if not self._use_worker:
            return None
        if self._manager is None:
            self._manager = SamplingWorkerManager()
        return self._manager

    def sample_for_chart(
        self,
        data: Sequence[Mapping[str, Any]],
        chart_width: float,
        device: str = "desktop",
    ) -> Future:
        """Sample to about one point per two pixels, capped by the device tier."""
        optimal = min(int(chart_width // 2), len(data))
        config = get_optimal_sampling_config(len(data), device)
        config = config.with_changes(target_points=max(1, min(config.target_points, optimal)))

        key = f"{fingerprint(list(data))}-{config.algorithm}-{config.target_points}"
        cached = self._cache.get(key)
        if cached is not None:
            return _completed(list(cached))

        offload = self._use_worker and len(data) >= self._threshold
        result = sample_data_safe(
            data,
            config,
            use_worker=offload,
            threshold=self._threshold,
            manager=self._worker() if offload else None,
        )
        result.add_done_callback(lambda f: self._remember(key, f))
        return result

    def _remember(self, key: str, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        self._cache.set(key, list(future.result()))

    def clear_cache(self) -> None:
        self._cache.clear()

    def terminate(self) -> None:
        if self._manager is not None and self._owns_manager:
            self._manager.terminate()
            self._manager = None
        self.clear_cache()


__all__ = [
    "ChartSamplingManager",
    "SamplingWorkerManager",
    "get_sampling_worker",
    "sample_data_safe",
    "terminate_sampling_worker",
]
