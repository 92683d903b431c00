from __future__ import annotations
"""
Per-chart state holder.

The context owns the raw rows, the chart configuration, the render cache and
the chart registrations. Every data or configuration change pushes a new
immutable :class:`ProcessedChartData` snapshot to listeners through Qt
signals. Large datasets are sampled through an optional
:class:`SamplingWorkerManager`; results are marshalled back to the Qt main
thread before they are published.
"""


import logging
import math
import uuid
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

from PySide6.QtCore import QObject, QTimer, Signal

from backend.models.options import ChartConfig, SamplingConfig
from backend.models.series import (
    SeriesPoint,
    detect_x_key,
    freeze_row,
    ingest_points,
    is_valid_number,
    numeric_keys,
)
from backend.services.offload import SamplingWorkerManager
from backend.services.sampling import sample_data
from core.datetime_utils import to_epoch_ms_array

from ..threading.utils import run_in_main_thread
from .path_generator import PathGenerator
from .performance_monitor import PerformanceMonitor
from .render_cache import RenderCache
from .scales import LinearScale, TimeScale, create_linear_scale, create_time_scale

logger = logging.getLogger(__name__)

CACHE_SWEEP_INTERVAL_MS = 60_000


class ChartState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ChartPoint:
    """A row projected to pixel space."""

    x: float
    y: float
    value: float
    raw: Mapping[str, Any]
    index: int


@dataclass(frozen=True)
class ProcessedChartData:
    sampled_data: tuple
    x_scale: Union[LinearScale, TimeScale]
    y_scale: LinearScale
    x_domain: tuple
    y_domain: tuple[float, float]
    path_data: str
    points: tuple[ChartPoint, ...]
    x_key: Optional[str] = None
    y_key: str = ""
    original_length: int = 0
    sampled_x: tuple = ()  # resolved x value per sampled row


@dataclass(frozen=True)
class ChartRegistration:
    id: str
    data_key: str
    config: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    handle: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class _Prepared:
    """Everything derived from rows/config before sampling."""

    points: tuple[SeriesPoint, ...]
    rows: list
    x_key: Optional[str]
    y_key: str
    is_time_axis: bool
    y_keys: tuple[str, ...]
    sampling: SamplingConfig


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def _failed(exc: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(exc)
    return future


def compute_y_domain(rows: Sequence[Mapping[str, Any]], keys: Sequence[str]) -> tuple[float, float]:
    """Min/max over ``keys`` with 10% padding.

    The lower bound is clamped at 0 only when every value is non-negative.
    A flat series is padded by 10% of its magnitude (or 1) so it does not
    collapse onto the axis.
    """
    values = [float(row[key]) for row in rows for key in keys if key in row and is_valid_number(row[key])]
    if not values:
        raise ValueError("No valid numeric values found for Y domain calculation")
    low = min(values)
    high = max(values)
    padding = (high - low) * 0.1
    if padding == 0:
        padding = abs(low) * 0.1 or 1.0
    lower = low - padding
    if low >= 0:
        lower = max(0.0, lower)
    return (lower, high + padding)


class ChartContext(QObject):
    """Holds one chart's data, configuration and derived render state."""

    state_changed = Signal(str)
    processed_data_changed = Signal(object)  # ProcessedChartData or None
    resized = Signal(float, float)
    error_occurred = Signal(str)

    def __init__(
        self,
        config: Optional[ChartConfig] = None,
        *,
        render_cache: Optional[RenderCache] = None,
        path_generator: Optional[PathGenerator] = None,
        sampling_manager: Optional[SamplingWorkerManager] = None,
        monitor: Optional[PerformanceMonitor] = None,
        sweep_interval_ms: int = CACHE_SWEEP_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._config = config or ChartConfig()
        self._data: tuple = ()
        self._data_token = ""  # identifies the current rows in render cache keys
        self._registrations: dict[str, ChartRegistration] = {}
        self._cache: RenderCache = render_cache if render_cache is not None else RenderCache()
        self._paths = path_generator or PathGenerator()
        self._sampling_manager = sampling_manager
        self._monitor = monitor or PerformanceMonitor()
        self._state = ChartState.IDLE
        self._error: Optional[BaseException] = None
        self._processed: Optional[ProcessedChartData] = None
        self._generation = 0
        self._pending_size: Optional[tuple[float, float]] = None
        self._destroyed = False

        self._sweep_timer = QTimer(self)
        self._sweep_timer.setInterval(int(sweep_interval_ms))
        self._sweep_timer.timeout.connect(self._sweep_cache)
        self._sweep_timer.start()

        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(max(0, int(self._config.debounce_ms)))
        self._resize_timer.timeout.connect(self._apply_resize)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def config(self) -> ChartConfig:
        return self._config

    @property
    def data(self) -> tuple:
        return self._data

    @property
    def state(self) -> ChartState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def processed_data(self) -> Optional[ProcessedChartData]:
        """Latest successful snapshot; kept while in the error state."""
        return self._processed

    @property
    def is_ready(self) -> bool:
        return self._state is ChartState.READY and bool(self._data)

    @property
    def render_cache(self) -> RenderCache:
        return self._cache

    @property
    def path_generator(self) -> PathGenerator:
        return self._paths

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def set_data(self, rows: Sequence[Mapping[str, Any]]) -> Future:
        if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
            raise TypeError("Chart data must be a sequence of mappings")
        self._data = tuple(freeze_row(row) for row in rows if isinstance(row, Mapping))
        self._data_token = uuid.uuid4().hex
        skipped = len(rows) - len(self._data)
        if skipped:
            logger.warning("Ignored %d chart rows that are not mappings", skipped)
        self._cache.invalidate()
        return self.refresh()

    def update_config(self, config: Optional[ChartConfig] = None, **changes) -> Future:
        """Replace the config or merge ``changes`` (``width``/``height``/``margin`` included)."""
        new_config = config if config is not None else self._config
        if changes:
            new_config = new_config.merged(**changes)
        self._config = new_config
        self._resize_timer.setInterval(max(0, int(new_config.debounce_ms)))
        self._cache.invalidate()
        return self.refresh()

    def register_chart(
        self,
        data_key: str,
        config: Optional[Mapping[str, Any]] = None,
        *,
        handle: Any = None,
    ) -> str:
        chart_id = uuid.uuid4().hex[:12]
        self._registrations[chart_id] = ChartRegistration(
            id=chart_id,
            data_key=data_key,
            config=MappingProxyType(dict(config or {})),
            handle=handle,
        )
        logger.debug("Registered chart %s for %r", chart_id, data_key)
        self.refresh()
        return chart_id

    def unregister_chart(self, chart_id: str) -> bool:
        if self._registrations.pop(chart_id, None) is None:
            return False
        self.refresh()
        return True

    @property
    def registered_charts(self) -> dict[str, ChartRegistration]:
        return dict(self._registrations)

    def get_chart_config(self, chart_id: str) -> Optional[dict[str, Any]]:
        registration = self._registrations.get(chart_id)
        return dict(registration.config) if registration is not None else None

    def update_chart_config(self, chart_id: str, **changes) -> bool:
        registration = self._registrations.get(chart_id)
        if registration is None:
            return False
        merged = MappingProxyType({**registration.config, **changes})
        self._registrations[chart_id] = ChartRegistration(
            id=registration.id,
            data_key=registration.data_key,
            config=merged,
            handle=registration.handle,
        )
        self.refresh()
        return True

    def get_all_chart_configs(self) -> dict[str, dict[str, Any]]:
        return {chart_id: dict(reg.config) for chart_id, reg in self._registrations.items()}

    # ------------------------------------------------------------------
    # Resize
    # ------------------------------------------------------------------
    def notify_resize(self, width: float, height: float) -> None:
        """Debounced viewport change; the latest size wins."""
        if self._destroyed:
            return
        self._pending_size = (float(width), float(height))
        self._resize_timer.start()

    def _apply_resize(self) -> None:
        size, self._pending_size = self._pending_size, None
        if size is None or self._destroyed:
            return
        width, height = size
        self._cache.invalidate()
        dims = self._config.dimensions
        if (dims.width, dims.height) != (width, height):
            self._config = self._config.merged(width=width, height=height)
            self.refresh()
        self.resized.emit(width, height)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def destroy(self) -> None:
        """Stop timers and drop cached state; pending offloaded work is ignored."""
        if self._destroyed:
            return
        self._destroyed = True
        self._generation += 1
        self._sweep_timer.stop()
        self._resize_timer.stop()
        self._cache.invalidate()
        self._paths.clear_cache()
        self._registrations.clear()
        self._pending_size = None

    def _sweep_cache(self) -> None:
        self._cache.sweep()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------
    def _cache_key(self) -> str:
        registrations = [
            (reg.id, reg.data_key, dict(reg.config))
            for reg in sorted(self._registrations.values(), key=lambda r: r.id)
        ]
        return RenderCache.make_key(self._data_token, self._config, registrations)

    def refresh(self) -> Future:
        """Recompute the processed snapshot for the current data/config.

        The future resolves to the new :class:`ProcessedChartData` (``None``
        for empty data or a superseded computation) or carries the processing
        error.
        """
        if self._destroyed:
            return _completed(None)
        self._generation += 1
        generation = self._generation

        if not self._data:
            self._error = None
            self._processed = None
            self._set_state(ChartState.IDLE)
            self.processed_data_changed.emit(None)
            return _completed(None)

        key = self._cache_key()
        cached = self._cache.get(key)
        if cached is not None:
            self._monitor.record_cache_hit()
            self._publish(cached)
            return _completed(cached)
        self._monitor.record_cache_miss()

        self._set_state(ChartState.PROCESSING)
        try:
            prepared = self._prepare()
        except Exception as exc:
            self._fail(exc)
            return _failed(exc)

        manager = self._sampling_manager
        if manager is not None and manager.is_available and len(prepared.rows) > self._config.offload_threshold:
            outcome: Future = Future()
            offloaded = manager.sample(prepared.rows, prepared.sampling)
            offloaded.add_done_callback(
                lambda f: run_in_main_thread(self._finish_offloaded, generation, key, prepared, f, outcome)
            )
            return outcome

        try:
            sampled = sample_data(prepared.rows, prepared.sampling)
        except Exception as exc:
            self._fail(exc)
            return _failed(exc)
        return self._finish(key, prepared, sampled)

    def _prepare(self) -> _Prepared:
        config = self._config
        first = self._data[0]
        x_key = config.x_key or detect_x_key(first)
        if config.y_key:
            y_key = config.y_key
        else:
            candidates = numeric_keys(first, exclude=[x_key] if x_key else [])
            if not candidates:
                raise ValueError("No numeric data found for chart rendering")
            y_key = candidates[0]

        points = ingest_points(self._data, y_key, x_key=x_key)
        if not points:
            raise ValueError(f"No numeric values found for {y_key!r}")
        is_time_axis = not isinstance(points[0].x, (int, float))
        consistent = tuple(p for p in points if isinstance(p.x, (int, float)) != is_time_axis)
        if len(consistent) != len(points):
            logger.warning(
                "Skipped %d rows whose %r value does not match the chart's x axis",
                len(points) - len(consistent), x_key,
            )
            points = consistent

        if is_time_axis:
            xs = to_epoch_ms_array([point.x for point in points]).tolist()
        else:
            xs = [float(point.x) for point in points]
        rows = [
            {"x": float(point.index) if math.isnan(x) else x, "value": point.y, "i": position}
            for position, (point, x) in enumerate(zip(points, xs))
        ]

        y_keys = [y_key] + [
            reg.data_key for reg in self._registrations.values() if reg.data_key and reg.data_key != y_key
        ]
        sampling = config.sampling_config(x_key="x", y_key="value")
        return _Prepared(
            points=points,
            rows=rows,
            x_key=x_key,
            y_key=y_key,
            is_time_axis=is_time_axis,
            y_keys=tuple(dict.fromkeys(y_keys)),
            sampling=sampling,
        )

    def _finish_offloaded(self, generation: int, key: str, prepared: _Prepared, offloaded: Future, outcome: Future) -> None:
        if generation != self._generation or self._destroyed:
            outcome.set_result(None)
            return
        try:
            sampled = offloaded.result()["data"]
        except Exception as exc:
            logger.warning("Offloaded sampling failed, sampling inline instead: %s", exc)
            try:
                sampled = sample_data(prepared.rows, prepared.sampling)
            except Exception as inline_exc:
                self._fail(inline_exc)
                outcome.set_exception(inline_exc)
                return
        finished = self._finish(key, prepared, sampled)
        if finished.exception() is not None:
            outcome.set_exception(finished.exception())
        else:
            outcome.set_result(finished.result())

    def _finish(self, key: str, prepared: _Prepared, sampled_rows: Sequence[Mapping[str, Any]]) -> Future:
        try:
            with self._monitor.measure():
                processed = self._build(prepared, sampled_rows)
        except Exception as exc:
            self._fail(exc)
            return _failed(exc)
        self._cache.set(key, processed)
        self._publish(processed)
        return _completed(processed)

    def _build(self, prepared: _Prepared, sampled_rows: Sequence[Mapping[str, Any]]) -> ProcessedChartData:
        config = self._config
        dims = config.dimensions
        margin = dims.margin
        x_range = (margin.left, dims.width - margin.right)
        y_range = (dims.height - margin.bottom, margin.top)

        all_points = prepared.points
        xs = [p.x for p in all_points]
        x_domain = (min(xs), max(xs))
        if prepared.is_time_axis:
            x_scale = create_time_scale(x_domain, x_range)
        else:
            x_scale = create_linear_scale(x_domain, x_range)
        y_domain = compute_y_domain([p.raw for p in all_points], prepared.y_keys)
        y_scale = create_linear_scale(y_domain, y_range)

        selected = [all_points[int(row["i"])] for row in sampled_rows]
        chart_points = []
        for point in selected:
            px = x_scale(point.x)
            py = y_scale(point.y)
            if not (math.isfinite(px) and math.isfinite(py)):
                logger.warning("Skipping point %d with non-finite coordinates", point.index)
                continue
            chart_points.append(ChartPoint(x=px, y=py, value=point.y, raw=point.raw, index=point.index))

        path = self._paths.create_path(chart_points, config.curve, config.tension)
        return ProcessedChartData(
            sampled_data=tuple(point.raw for point in selected),
            x_scale=x_scale,
            y_scale=y_scale,
            x_domain=x_domain,
            y_domain=y_domain,
            path_data=path,
            points=tuple(chart_points),
            x_key=prepared.x_key,
            y_key=prepared.y_key,
            original_length=len(self._data),
            sampled_x=tuple(point.x for point in selected),
        )

    def _publish(self, processed: ProcessedChartData) -> None:
        self._error = None
        self._processed = processed
        self._set_state(ChartState.READY)
        self.processed_data_changed.emit(processed)

    def _fail(self, exc: BaseException) -> None:
        logger.error("Chart processing error: %s", exc, exc_info=exc)
        self._error = exc
        self._set_state(ChartState.ERROR)
        self.error_occurred.emit(str(exc))

    def _set_state(self, state: ChartState) -> None:
        if state is self._state:
            return
        self._state = state
        self.state_changed.emit(state.value)


__all__ = [
    "CACHE_SWEEP_INTERVAL_MS",
    "ChartContext",
    "ChartPoint",
    "ChartRegistration",
    "ChartState",
    "ProcessedChartData",
    "compute_y_domain",
]
