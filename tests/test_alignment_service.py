"""Tests for multi-series alignment."""
from pathlib import Path
import sys

sys.path.insert(0, str((Path(__file__).parent.parent / "src").resolve()))

from backend.services.alignment_service import (
    align_series,
    create_sampling_indices,
    find_nearest_point,
    sample_large_dataset,
)
from backend.services.data_generator import generate_test_lines


def _line(line_id, points, seed):
    line = generate_test_lines(points, lines=1, seed=seed)[0]
    line["id"] = line_id
    return line


def test_lines_of_different_length_align_to_same_positions():
    short = _line("short", 300, 1)
    long = _line("long", 900, 2)
    result = align_series([short, long], sample_rate=0.1, x_key="date")

    a, b = result.lines
    assert len(a["data"]) == len(b["data"]) == 100
    assert a["id"] == "short" and b["id"] == "long"
    meta = result.metadata.to_dict()
    assert meta == {
        "originalPoints": 1200,
        "sampledPoints": 200,
        "compressionRatio": 6.0,
        "targetSampleSize": 100,
        "unifiedXValues": 100,
        "linesProcessed": 2,
    }
    # The long line is sampled on exact dates, in chronological order.
    dates = [row["date"] for row in b["data"]]
    assert dates == sorted(dates)
    assert dates[0] == long["data"][0]["date"]
    assert dates[-1] == long["data"][-1]["date"]


def test_short_line_uses_nearest_point_beyond_its_range():
    short = _line("short", 300, 1)
    long = _line("long", 900, 2)
    result = align_series([short, long], x_key="date")
    assert result.lines[0]["data"][-1] is short["data"][-1]


def test_small_inputs_keep_every_shared_position():
    lines = [
        {"id": "a", "label": "A", "data": [{"x": 10, "value": 1}, {"x": 2, "value": 2}]},
        {"id": "b", "label": "B", "data": [{"x": 33, "value": 3}]},
    ]
    result = align_series(lines, x_key="x")
    assert [row["x"] for row in result.lines[0]["data"]] == [2, 10, 10]
    assert [row["x"] for row in result.lines[1]["data"]] == [33, 33, 33]
    assert result.metadata.unified_x_values == 3


def test_malformed_lines_and_rows_are_skipped():
    good = {"id": "ok", "data": [{"date": "2024-01-01", "value": 1}, {"value": 5}, "junk"]}
    result = align_series([good, "not a line", {"id": "nodata", "data": None}], x_key="date")
    assert len(result.lines) == 3
    assert result.lines[0]["data"] == [good["data"][0]]
    assert result.lines[1]["data"] == []
    assert result.lines[2]["id"] == "nodata"
    assert result.lines[2]["data"] == []


def test_empty_input():
    result = align_series([])
    assert result.lines == []
    assert result.metadata is None


def test_find_nearest_point():
    data = [
        {"date": "2024-01-01", "value": 1},
        {"date": "2024-01-04", "value": 2},
        {"date": "2024-01-10", "value": 3},
        {"value": 4},
    ]
    assert find_nearest_point(data, "2024-01-05", "date")["value"] == 2
    assert find_nearest_point(data, "2023-01-01", "date")["value"] == 1
    assert find_nearest_point([], "2024-01-01", "date") is None
    numeric = [{"x": 0}, {"x": 2}, {"x": 4}]
    # ties keep the first match
    assert find_nearest_point(numeric, 1, "x") is numeric[0]


def test_create_sampling_indices():
    assert create_sampling_indices(0, 10) == []
    assert create_sampling_indices(1, 10) == [0]
    assert create_sampling_indices(10, 3) == [0, 5, 9]
    indices = create_sampling_indices(5000, 500)
    assert len(indices) == 500
    assert indices[0] == 0 and indices[-1] == 4999


def test_sample_large_dataset():
    small = list(range(1000))
    assert sample_large_dataset(small) == small
    sampled = sample_large_dataset(list(range(5000)), 0.1)
    assert len(sampled) == 500
    assert sampled[0] == 0 and sampled[-1] == 4999
    assert len(sample_large_dataset(list(range(1500)), 0.01)) == 100
