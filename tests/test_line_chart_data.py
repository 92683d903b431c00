"""Tests for single- and multi-line chart data builders."""
from pathlib import Path
import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, str((Path(__file__).parent.parent / "src").resolve()))

from PySide6.QtCore import QCoreApplication

from backend.models.options import ChartConfig
from backend.models.series import LineData
from backend.services.data_generator import generate_test_lines
from frontend.charts import (
    ChartContext,
    PathGenerator,
    TimeScale,
    process_line_chart_data,
    process_multi_line_chart_data,
)
from frontend.charts.scales import LinearScale


@pytest.fixture(scope="module")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def test_line_data_for_registered_key(qapp):
    rows = [{"date": f"2024-02-{d:02d}", "value": d, "other": None if d == 3 else 2 * d} for d in range(1, 11)]
    ctx = ChartContext()
    try:
        ctx.set_data(rows)
        ctx.register_chart("other")
        processed = ctx.processed_data
        value_line = process_line_chart_data(processed, "value")
        other_line = process_line_chart_data(processed, "other", ChartConfig(curve="smooth"))
    finally:
        ctx.destroy()

    assert len(value_line.points) == 10
    assert value_line.path.startswith("M")
    assert len(other_line.points) == 9
    assert all(p.raw["other"] is not None for p in other_line.points)
    assert " C" in other_line.path
    # both lines share the context's scales
    assert value_line.points[0].x == other_line.points[0].x


def test_line_data_without_snapshot():
    assert process_line_chart_data(None, "value") is None


def test_multi_line_alignment_and_shared_scales():
    lines = generate_test_lines(400, lines=3, seed=12)
    paths = PathGenerator()
    result = process_multi_line_chart_data(lines, path_generator=paths)

    assert result.x_key == "date"
    assert isinstance(result.x_scale, TimeScale)
    assert result.metadata.lines_processed == 3
    assert [line.id for line in result.lines] == ["line-1", "line-2", "line-3"]
    lengths = {len(line.points) for line in result.lines}
    assert lengths == {100}
    low, high = result.y_domain
    for line in result.lines:
        assert line.path.startswith("M")
        for point in line.points:
            assert low <= point.value <= high


def test_multi_line_accepts_line_data_objects():
    raw = generate_test_lines(20, lines=2, seed=1)
    lines = [LineData.from_dict(line, index=i) for i, line in enumerate(raw)]
    result = process_multi_line_chart_data(lines, ChartConfig(curve="smooth"))
    assert len(result.lines) == 2
    assert result.lines[0].color == raw[0]["color"]
    assert all(len(line.points) == 20 for line in result.lines)


def test_multi_line_without_plottable_points():
    assert process_multi_line_chart_data([]) is None
    assert process_multi_line_chart_data([{"id": "a", "data": [{"date": "2024-01-01", "value": "?"}]}]) is None


def test_multi_line_aligns_numeric_x():
    short = {"id": "a", "data": [{"x": i, "value": (i % 7) - 3} for i in range(300)]}
    long = {"id": "b", "data": [{"x": i * 0.5, "value": (i % 11) * 0.5} for i in range(900)]}
    result = process_multi_line_chart_data([short, long])

    assert result.x_key == "x"
    assert isinstance(result.x_scale, LinearScale)
    assert result.metadata is not None
    assert result.metadata.original_points == 1200
    assert result.metadata.unified_x_values == 100
    assert [len(line.points) for line in result.lines] == [100, 100]
    xs = [point.x for point in result.lines[1].points]
    assert xs == sorted(xs)


def test_multi_line_prefers_x_among_shared_numeric_fields():
    lines = [
        {"id": "a", "data": [{"step": i, "x": i * 2, "value": i} for i in range(5)]},
        {"id": "b", "data": [{"step": i, "x": i * 2, "value": -i} for i in range(5)]},
    ]
    result = process_multi_line_chart_data(lines)
    assert result.x_key == "x"
    assert result.x_domain == (0.0, 8.0)


def test_multi_line_without_shared_x_uses_row_positions():
    lines = [
        {"id": "a", "data": [{"value": i} for i in range(4)]},
        {"id": "b", "data": [{"value": i * 2} for i in range(6)]},
    ]
    result = process_multi_line_chart_data(lines)
    assert result.x_key is None
    assert result.metadata is None
    assert [len(line.points) for line in result.lines] == [4, 6]
