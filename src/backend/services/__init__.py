"""Backend service helpers with lazy imports to avoid circular dependencies."""

from importlib import import_module
from typing import Any, Dict

__all__ = [
    "AlignmentResult",
    "ChartSamplingManager",
    "SamplingResult",
    "SamplingWorkerManager",
    "align_series",
    "analyze_data",
    "benchmark_sampling",
    "calculate_data_statistics",
    "generate_test_lines",
    "get_optimal_sampling_config",
    "sample_data",
    "sample_data_safe",
    "sample_large_dataset",
]

_MODULE_MAP: Dict[str, str] = {
    "AlignmentResult": ".alignment_service",
    "ChartSamplingManager": ".offload",
    "SamplingResult": ".sampling",
    "SamplingWorkerManager": ".offload",
    "align_series": ".alignment_service",
    "analyze_data": ".sampling",
    "benchmark_sampling": ".sampling",
    "calculate_data_statistics": ".sampling",
    "generate_test_lines": ".data_generator",
    "get_optimal_sampling_config": ".sampling",
    "sample_data": ".sampling",
    "sample_data_safe": ".offload",
    "sample_large_dataset": ".alignment_service",
}


def __getattr__(name: str) -> Any:
    module_name = _MODULE_MAP.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(f"{__name__}{module_name}")
    value = getattr(module, name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - convenience
    return sorted(set(__all__ + list(globals().keys())))
