from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from backend.models.options import ChartConfig
from backend.models.series import LineData, detect_x_key, ingest_points, is_valid_number, numeric_keys
from backend.services.alignment_service import AlignmentMetadata, align_series

from .chart_context import ChartPoint, ProcessedChartData, compute_y_domain
from .path_generator import PathGenerator
from .scales import LinearScale, TimeScale, create_linear_scale, create_time_scale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineChartData:
    data_key: str
    points: tuple[ChartPoint, ...]
    path: str


@dataclass(frozen=True)
class LineSeries:
    id: str
    label: str
    color: str
    points: tuple[ChartPoint, ...]
    path: str


@dataclass(frozen=True)
class MultiLineChartData:
    lines: tuple[LineSeries, ...]
    x_scale: Union[LinearScale, TimeScale]
    y_scale: LinearScale
    x_domain: tuple
    y_domain: tuple[float, float]
    x_key: Optional[str]
    metadata: Optional[AlignmentMetadata] = None


def process_line_chart_data(
    processed: Optional[ProcessedChartData],
    data_key: str,
    config: Optional[ChartConfig] = None,
    *,
    path_generator: Optional[PathGenerator] = None,
) -> Optional[LineChartData]:
    """Points and path for ``data_key`` using the context's shared scales.

    Rows whose ``data_key`` value is not a finite number are skipped.
    """
    if processed is None:
        return None
    config = config or ChartConfig()
    paths = path_generator or PathGenerator()

    points = []
    for position, (raw, x_value) in enumerate(zip(processed.sampled_data, processed.sampled_x)):
        value = raw.get(data_key)
        if not is_valid_number(value):
            continue
        px = processed.x_scale(x_value)
        py = processed.y_scale(float(value))
        if not (math.isfinite(px) and math.isfinite(py)):
            continue
        points.append(ChartPoint(x=px, y=py, value=float(value), raw=raw, index=position))

    return LineChartData(
        data_key=data_key,
        points=tuple(points),
        path=paths.create_path(points, config.curve, config.tension),
    )


def _as_line_dict(line: Union[LineData, Mapping[str, Any]], index: int) -> dict[str, Any]:
    if isinstance(line, LineData):
        return line.to_dict()
    return LineData.from_dict(line, index=index).to_dict() if isinstance(line, Mapping) else {}


def _shared_x_key(lines: Sequence[Mapping[str, Any]], y_key: str) -> Optional[str]:
    """X field for aligning ``lines``.

    The first date-like field wins. Without one, a numeric field present in
    the first row of every line is used, preferring ``"x"``.
    """
    first_rows = [line["data"][0] for line in lines if line["data"]]
    if not first_rows:
        return None
    date_key = detect_x_key(first_rows[0])
    if date_key is not None:
        return date_key
    shared = [
        key
        for key in numeric_keys(first_rows[0], exclude=[y_key])
        if all(is_valid_number(row.get(key)) for row in first_rows)
    ]
    if "x" in shared:
        return "x"
    return shared[0] if shared else None


def process_multi_line_chart_data(
    lines: Sequence[Union[LineData, Mapping[str, Any]]],
    config: Optional[ChartConfig] = None,
    *,
    sample_rate: float = 0.1,
    x_key: Optional[str] = None,
    y_key: str = "value",
    path_generator: Optional[PathGenerator] = None,
) -> Optional[MultiLineChartData]:
    """Align several series, scale them together and build one path per series.

    Returns ``None`` when no series has a plottable point.
    """
    config = config or ChartConfig()
    paths = path_generator or PathGenerator()
    payload = [d for d in (_as_line_dict(line, i) for i, line in enumerate(lines or [])) if d]
    if not payload:
        return None

    if x_key is None:
        x_key = _shared_x_key(payload, y_key)

    metadata = None
    if x_key is not None:
        aligned = align_series(payload, sample_rate, x_key)
        payload, metadata = aligned.lines, aligned.metadata

    ingested = [ingest_points(line.get("data") or [], y_key, x_key=x_key) for line in payload]
    all_points = [p for points in ingested for p in points]
    if not all_points:
        return None

    is_time_axis = not isinstance(all_points[0].x, (int, float))
    ingested = [
        tuple(p for p in points if isinstance(p.x, (int, float)) != is_time_axis) for points in ingested
    ]
    all_points = [p for points in ingested for p in points]

    dims = config.dimensions
    margin = dims.margin
    x_range = (margin.left, dims.width - margin.right)
    y_range = (dims.height - margin.bottom, margin.top)
    xs = [p.x for p in all_points]
    x_domain = (min(xs), max(xs))
    x_scale = create_time_scale(x_domain, x_range) if is_time_axis else create_linear_scale(x_domain, x_range)
    y_domain = compute_y_domain([p.raw for p in all_points], [y_key])
    y_scale = create_linear_scale(y_domain, y_range)

    series = []
    for line, points in zip(payload, ingested):
        chart_points = [
            ChartPoint(x=x_scale(p.x), y=y_scale(p.y), value=p.y, raw=p.raw, index=p.index) for p in points
        ]
        series.append(
            LineSeries(
                id=str(line.get("id")),
                label=str(line.get("label")),
                color=str(line.get("color") or ""),
                points=tuple(chart_points),
                path=paths.create_path(chart_points, config.curve, config.tension),
            )
        )
    logger.debug("Processed %d lines (%d points)", len(series), len(all_points))

    return MultiLineChartData(
        lines=tuple(series),
        x_scale=x_scale,
        y_scale=y_scale,
        x_domain=x_domain,
        y_domain=y_domain,
        x_key=x_key,
        metadata=metadata,
    )


__all__ = [
    "LineChartData",
    "LineSeries",
    "MultiLineChartData",
    "process_line_chart_data",
    "process_multi_line_chart_data",
]
