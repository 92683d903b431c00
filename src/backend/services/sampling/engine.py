from __future__ import annotations
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from backend.models.options import DEVICE_POINT_LIMITS, SAMPLING_ALGORITHMS, SamplingConfig
from backend.models.series import coerce_number

from .algorithms import (
    Rows,
    adaptive_sampling,
    calculate_volatility,
    douglas_peucker_sampling,
    hybrid_sampling,
    lttb_sampling,
    peaks_sampling,
    recommend_algorithm,
    uniform_sampling,
    visvalingam_sampling,
)

logger = logging.getLogger(__name__)

ConfigLike = Union[SamplingConfig, Mapping[str, Any], None]
ProgressCallback = Callable[[int, int], None]


def _as_config(config: ConfigLike) -> SamplingConfig:
    if isinstance(config, SamplingConfig):
        return config
    return SamplingConfig.from_dict(config)


def sample_data(data: Rows, config: ConfigLike = None) -> list:
    """Reduce ``data`` with the algorithm named in ``config``."""
    cfg = _as_config(config)
    if not data:
        return []
    target = cfg.target_points
    algorithm = cfg.algorithm
    if algorithm == "uniform":
        return uniform_sampling(data, target)
    if algorithm == "peaks":
        return peaks_sampling(data, target, cfg.y_key)
    if algorithm == "douglasPeucker":
        return douglas_peucker_sampling(data, cfg.epsilon, cfg.x_key, cfg.y_key, target_points=target)
    if algorithm == "visvalingam":
        return visvalingam_sampling(data, target, cfg.x_key, cfg.y_key)
    if algorithm == "lttb":
        return lttb_sampling(data, target, cfg.x_key, cfg.y_key)
    if algorithm == "adaptive":
        return adaptive_sampling(data, target, cfg.y_key)
    return hybrid_sampling(data, target, cfg.x_key, cfg.y_key)


# ---------------------------------------------------------------------------
# Result containers (wire shape via to_dict)
# ---------------------------------------------------------------------------

@dataclass
class SamplingResult:
    success: bool
    data: list = field(default_factory=list)
    original_length: int = 0
    sampled_length: int = 0
    processing_time: float = 0.0  # milliseconds
    algorithm: str = ""
    compression_ratio: float = 1.0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "success": self.success,
            "data": self.data,
            "originalLength": self.original_length,
            "sampledLength": self.sampled_length,
            "processingTime": self.processing_time,
            "algorithm": self.algorithm,
            "compressionRatio": self.compression_ratio,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class BatchResult:
    results: list[SamplingResult]
    total_processing_time: float
    datasets_processed: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "totalProcessingTime": self.total_processing_time,
            "datasetsProcessed": self.datasets_processed,
        }


@dataclass
class BenchmarkEntry:
    processing_time: float
    compression_ratio: float
    sampled_points: int
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "processingTime": self.processing_time,
            "compressionRatio": self.compression_ratio,
            "sampledPoints": self.sampled_points,
            "success": self.success,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class DataAnalysis:
    volatility: float
    data_length: int
    recommended_algorithm: str

    def to_dict(self) -> dict[str, Any]:
        volatility = None if math.isnan(self.volatility) else self.volatility
        return {
            "volatility": volatility,
            "dataLength": self.data_length,
            "recommendedAlgorithm": self.recommended_algorithm,
        }


@dataclass
class DataStatistics:
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    std: float = 0.0
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "std": self.std,
            "count": self.count,
        }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def _ratio(original: int, sampled: int) -> float:
    """Compression ratio as original length over sampled length."""
    return original / sampled if sampled else 1.0


def run_sampling(data: Rows, config: ConfigLike = None) -> SamplingResult:
    """Sample and time one dataset; failures are reported, not raised."""
    cfg = _as_config(config)
    data = list(data or [])
    started = time.perf_counter()
    try:
        sampled = sample_data(data, cfg)
    except Exception as exc:  # reported to the caller as an unsuccessful result
        logger.exception("Sampling with %s failed", cfg.algorithm)
        return SamplingResult(
            success=False,
            original_length=len(data),
            algorithm=cfg.algorithm,
            processing_time=(time.perf_counter() - started) * 1000.0,
            error=str(exc),
        )
    elapsed = (time.perf_counter() - started) * 1000.0
    return SamplingResult(
        success=True,
        data=sampled,
        original_length=len(data),
        sampled_length=len(sampled),
        processing_time=elapsed,
        algorithm=cfg.algorithm,
        compression_ratio=_ratio(len(data), len(sampled)),
    )


def batch_sample(
    datasets: Sequence[Rows],
    configs: Sequence[ConfigLike],
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchResult:
    """Sample several datasets in order.

    ``progress_callback(completed, total)`` fires about every tenth dataset
    when more than five datasets are processed.
    """
    total = len(datasets)
    every = max(1, math.ceil(total / 10))
    results: list[SamplingResult] = []
    started = time.perf_counter()
    for index, dataset in enumerate(datasets):
        if index < len(configs) and configs[index] is not None:
            config = configs[index]
        else:
            config = configs[0] if configs else None
        results.append(run_sampling(dataset, config))
        if progress_callback is not None and total > 5 and index % every == 0:
            progress_callback(index + 1, total)
    return BatchResult(
        results=results,
        total_processing_time=(time.perf_counter() - started) * 1000.0,
        datasets_processed=total,
    )


def benchmark_sampling(
    data: Rows,
    algorithms: Optional[Iterable[str]] = None,
    target_points: int = 800,
    *,
    x_key: str = "x",
    y_key: str = "value",
) -> dict[str, BenchmarkEntry]:
    data = list(data or [])
    names = list(algorithms) if algorithms is not None else list(SAMPLING_ALGORITHMS)
    report: dict[str, BenchmarkEntry] = {}
    for name in names:
        try:
            cfg = SamplingConfig(algorithm=name, target_points=target_points, x_key=x_key, y_key=y_key)
        except ValueError as exc:
            report[name] = BenchmarkEntry(0.0, 1.0, 0, False, error=str(exc))
            continue
        result = run_sampling(data, cfg)
        report[name] = BenchmarkEntry(
            processing_time=result.processing_time,
            compression_ratio=result.compression_ratio,
            sampled_points=result.sampled_length,
            success=result.success,
            error=result.error,
        )
    return report


def analyze_data(data: Rows, y_key: str = "value") -> DataAnalysis:
    data = data or []
    volatility = calculate_volatility(data, y_key)
    return DataAnalysis(
        volatility=volatility,
        data_length=len(data),
        recommended_algorithm=recommend_algorithm(volatility),
    )


def calculate_data_statistics(data: Rows, y_key: str = "value") -> DataStatistics:
    """Summary statistics over the numeric ``y_key`` values (NaN dropped)."""
    values = pd.Series(
        [coerce_number(row.get(y_key)) if isinstance(row, Mapping) else math.nan for row in data or []],
        dtype=float,
    ).dropna()
    values = values[np.isfinite(values)]
    if values.empty:
        return DataStatistics()
    return DataStatistics(
        min=float(values.min()),
        max=float(values.max()),
        mean=float(values.mean()),
        median=float(values.median()),
        std=float(values.std(ddof=0)),
        count=int(values.count()),
    )


def get_optimal_sampling_config(data_length: int, device: str = "desktop") -> SamplingConfig:
    """Pick a point budget and algorithm for a device tier and dataset size."""
    limit = DEVICE_POINT_LIMITS.get(device, DEVICE_POINT_LIMITS["desktop"])
    if device == "mobile" and data_length > 10000:
        algorithm = "uniform"
    elif data_length > 50000:
        algorithm = "lttb"
    elif data_length > 5000:
        algorithm = "hybrid"
    else:
        algorithm = "uniform"
    return SamplingConfig(algorithm=algorithm, target_points=max(1, min(limit, data_length)))


__all__ = [
    "BatchResult",
    "BenchmarkEntry",
    "DataAnalysis",
    "DataStatistics",
    "SamplingResult",
    "analyze_data",
    "batch_sample",
    "benchmark_sampling",
    "calculate_data_statistics",
    "get_optimal_sampling_config",
    "run_sampling",
    "sample_data",
]
