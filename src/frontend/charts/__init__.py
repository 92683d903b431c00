"""Chart state for line charts: scales, paths, render cache and chart contexts."""

from .chart_context import (
    ChartContext,
    ChartPoint,
    ChartRegistration,
    ChartState,
    ProcessedChartData,
)
from .line_chart_data import (
    LineChartData,
    LineSeries,
    MultiLineChartData,
    process_line_chart_data,
    process_multi_line_chart_data,
)
from .path_generator import PathGenerator, create_straight_path
from .performance_monitor import PerformanceMonitor, PerformanceSummary
from .render_cache import RenderCache
from .scales import LinearScale, TimeScale, create_linear_scale, create_time_scale

__all__ = [
    "ChartContext",
    "ChartPoint",
    "ChartRegistration",
    "ChartState",
    "LineChartData",
    "LineSeries",
    "LinearScale",
    "MultiLineChartData",
    "PathGenerator",
    "PerformanceMonitor",
    "PerformanceSummary",
    "ProcessedChartData",
    "RenderCache",
    "TimeScale",
    "create_linear_scale",
    "create_straight_path",
    "create_time_scale",
    "process_line_chart_data",
    "process_multi_line_chart_data",
]
