"""Value types shared by the sampling services and the chart layer."""

from .options import (
    DEFAULT_OFFLOAD_THRESHOLD,
    DEVICE_POINT_LIMITS,
    SAMPLING_ALGORITHMS,
    ChartConfig,
    Dimensions,
    Margin,
    SamplingConfig,
)
from .series import LineData, Point2D, SeriesPoint, ingest_points

__all__ = [
    "ChartConfig",
    "DEFAULT_OFFLOAD_THRESHOLD",
    "DEVICE_POINT_LIMITS",
    "Dimensions",
    "LineData",
    "Margin",
    "Point2D",
    "SAMPLING_ALGORITHMS",
    "SamplingConfig",
    "SeriesPoint",
    "ingest_points",
]
