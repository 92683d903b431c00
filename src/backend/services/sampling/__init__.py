"""Line-data reduction: algorithms plus the dispatching/analysis layer."""

from .algorithms import (
    adaptive_sampling,
    calculate_volatility,
    douglas_peucker,
    douglas_peucker_sampling,
    hybrid_sampling,
    lttb_sampling,
    peaks_sampling,
    recommend_algorithm,
    uniform_sampling,
    visvalingam_sampling,
)
from .engine import (
    BatchResult,
    BenchmarkEntry,
    DataAnalysis,
    DataStatistics,
    SamplingResult,
    analyze_data,
    batch_sample,
    benchmark_sampling,
    calculate_data_statistics,
    get_optimal_sampling_config,
    run_sampling,
    sample_data,
)

__all__ = [
    "BatchResult",
    "BenchmarkEntry",
    "DataAnalysis",
    "DataStatistics",
    "SamplingResult",
    "adaptive_sampling",
    "analyze_data",
    "batch_sample",
    "benchmark_sampling",
    "calculate_data_statistics",
    "calculate_volatility",
    "douglas_peucker",
    "douglas_peucker_sampling",
    "get_optimal_sampling_config",
    "hybrid_sampling",
    "lttb_sampling",
    "peaks_sampling",
    "recommend_algorithm",
    "run_sampling",
    "sample_data",
    "uniform_sampling",
    "visvalingam_sampling",
]
