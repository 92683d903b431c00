from __future__ import annotations
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, Iterator

logger = logging.getLogger(__name__)

FRAME_BUDGET_MS = 16.0  # 60 fps
P95_BUDGET_MS = 33.0  # 30 fps


@dataclass(frozen=True)
class PerformanceSummary:
    render_count: int
    avg_render_time: float
    max_render_time: float
    min_render_time: float
    p95_render_time: float
    cache_hit_rate: float
    fps: float
    is_healthy: bool


class PerformanceMonitor:
    """Keeps the last ``max_samples`` render durations (ms) and cache hit counts."""

    def __init__(self, max_samples: int = 100, enabled: bool = True) -> None:
        self._samples: Deque[float] = deque(maxlen=max(1, int(max_samples)))
        self._hits = 0
        self._misses = 0
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def start_render(self) -> float:
        return time.perf_counter() if self._enabled else 0.0

    def end_render(self, started: float) -> None:
        if not self._enabled or started == 0.0:
            return
        self.record_render_time((time.perf_counter() - started) * 1000.0)

    @contextmanager
    def measure(self) -> Iterator[None]:
        started = self.start_render()
        try:
            yield
        finally:
            self.end_render(started)

    def record_render_time(self, ms: float) -> None:
        with self._lock:
            self._samples.append(float(ms))
            count = len(self._samples)
        if count >= 10:
            average = self.average_render_time()
            if average > FRAME_BUDGET_MS:
                logger.debug(
                    "Chart rendering is slow: %.2fms average (target: <%.0fms for 60fps)",
                    average, FRAME_BUDGET_MS,
                )

    def record_cache_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def average_render_time(self) -> float:
        with self._lock:
            samples = list(self._samples)
        return sum(samples) / len(samples) if samples else 0.0

    def p95_render_time(self) -> float:
        with self._lock:
            ordered = sorted(self._samples)
        if not ordered:
            return 0.0
        return ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))]

    def cache_hit_rate(self) -> float:
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total if total else 0.0

    def summary(self) -> PerformanceSummary:
        with self._lock:
            samples = list(self._samples)
        avg = sum(samples) / len(samples) if samples else 0.0
        p95 = self.p95_render_time()
        return PerformanceSummary(
            render_count=len(samples),
            avg_render_time=avg,
            max_render_time=max(samples) if samples else 0.0,
            min_render_time=min(samples) if samples else 0.0,
            p95_render_time=p95,
            cache_hit_rate=self.cache_hit_rate(),
            fps=1000.0 / avg if avg > 0 else 0.0,
            is_healthy=avg < FRAME_BUDGET_MS and p95 < P95_BUDGET_MS,
        )

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()
            self._hits = 0
            self._misses = 0

    def log_summary(self, level: int = logging.INFO) -> None:
        if not self._enabled:
            logger.log(level, "Performance monitoring is disabled")
            return
        s = self.summary()
        logger.log(
            level,
            "Chart performance: %s, %d renders, avg %.2fms (%.1f fps), p95 %.2fms, "
            "min/max %.2f/%.2fms, cache hit rate %.1f%%",
            "healthy" if s.is_healthy else "needs optimization",
            s.render_count, s.avg_render_time, s.fps, s.p95_render_time,
            s.min_render_time, s.max_render_time, s.cache_hit_rate * 100,
        )
        if not s.is_healthy:
            if s.avg_render_time > FRAME_BUDGET_MS:
                logger.warning("Average render time over budget; reduce points or sample more aggressively")
            if s.p95_render_time > P95_BUDGET_MS:
                logger.warning("95th percentile render time over budget; enable sampling for large datasets")
        if s.render_count and s.cache_hit_rate < 0.7:
            logger.info("Render cache hit rate below 70%%")


__all__ = ["PerformanceMonitor", "PerformanceSummary"]
