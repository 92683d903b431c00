"""Tests for the sampling algorithms."""
from pathlib import Path
import math
import sys

import numpy as np
import pytest

sys.path.insert(0, str((Path(__file__).parent.parent / "src").resolve()))

from backend.models.options import SAMPLING_ALGORITHMS, SamplingConfig
from backend.models.series import Point2D
from backend.services.data_generator import generate_series, generate_test_lines
from backend.services.sampling import sample_data
from backend.services.sampling.algorithms import (
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
    x_values,
    y_values,
)


def _rows(values):
    return [{"x": i, "value": v} for i, v in enumerate(values)]


def _assert_subsequence(sampled, data):
    positions = [data.index(row) for row in sampled]
    assert positions == sorted(positions)
    assert len(set(positions)) == len(positions)


@pytest.mark.parametrize("algorithm", [a for a in SAMPLING_ALGORITHMS if a != "douglasPeucker"])
def test_small_input_is_returned_unchanged(algorithm):
    data = _rows([3, 1, 4, 1, 5])
    sampled = sample_data(data, SamplingConfig(algorithm=algorithm, target_points=10))
    assert sampled == data
    assert sampled is not data


@pytest.mark.parametrize("algorithm", SAMPLING_ALGORITHMS)
def test_every_algorithm_respects_budget_and_order(algorithm):
    data = generate_series(2000, seed=7)
    sampled = sample_data(data, SamplingConfig(algorithm=algorithm, target_points=150))
    assert 0 < len(sampled) <= 150
    _assert_subsequence(sampled, data)


@pytest.mark.parametrize("algorithm", SAMPLING_ALGORITHMS)
def test_non_positive_target_gives_empty_result(algorithm):
    data = generate_series(50, seed=1)
    assert sample_data(data, SamplingConfig(algorithm=algorithm, target_points=0)) == []


def test_empty_input():
    assert sample_data([], {"algorithm": "lttb", "targetPoints": 10}) == []


def test_uniform_strides_and_endpoints():
    data = _rows(range(10))
    sampled = uniform_sampling(data, 4)
    assert [row["x"] for row in sampled] == [0, 3, 5, 9]
    assert uniform_sampling(data, 1) == [data[0]]


def test_lttb_large_series_keeps_endpoints():
    data = generate_series(10_000, seed=3)
    sampled = lttb_sampling(data, 500)
    assert len(sampled) == 500
    assert sampled[0] is data[0]
    assert sampled[-1] is data[-1]


def test_lttb_tiny_targets():
    data = _rows(range(20))
    assert lttb_sampling(data, 2) == [data[0], data[-1]]
    assert lttb_sampling(data, 1) == [data[0]]


def test_lttb_picks_spike():
    values = [0.0] * 100
    values[50] = 100.0
    data = _rows(values)
    sampled = lttb_sampling(data, 10)
    assert data[50] in sampled


def test_lttb_date_strings_use_time_axis():
    data = generate_test_lines(400, lines=1, seed=5)[0]["data"]
    sampled = lttb_sampling(data, 40, x_key="date")
    assert len(sampled) == 40
    assert sampled[0] is data[0] and sampled[-1] is data[-1]


def test_peaks_keeps_largest_extremes_and_fills_budget():
    values = [0.0] * 200
    values[40] = 50.0
    values[120] = -80.0
    data = _rows(values)
    sampled = peaks_sampling(data, 20)
    assert len(sampled) == 20
    assert data[40] in sampled and data[120] in sampled
    assert sampled[0] is data[0] and sampled[-1] is data[-1]


def test_peaks_equal_importance_is_deterministic():
    data = _rows([0, 1] * 100)
    first = peaks_sampling(data, 30)
    second = peaks_sampling(data, 30)
    assert first == second
    assert len(first) == 30
    _assert_subsequence(first, data)


def test_douglas_peucker_straight_line_keeps_endpoints():
    data = _rows([2 * i for i in range(100)])
    sampled = douglas_peucker_sampling(data, epsilon=0.5)
    assert sampled == [data[0], data[-1]]


def test_douglas_peucker_keeps_corner():
    data = _rows([0, 0, 0, 10, 0, 0, 0])
    sampled = douglas_peucker_sampling(data, epsilon=1.0)
    assert data[3] in sampled


def test_douglas_peucker_escalates_tolerance_to_fit_target():
    data = generate_series(3000, seed=11)
    sampled = douglas_peucker_sampling(data, epsilon=0.0, target_points=100)
    assert 2 <= len(sampled) <= 100
    _assert_subsequence(sampled, data)


def test_douglas_peucker_on_pixel_points():
    points = [Point2D(0, 0), Point2D(1, 0.1), Point2D(2, 0), Point2D(3, 5), Point2D(4, 0)]
    simplified = douglas_peucker(points, epsilon=1.0)
    assert simplified[0] == points[0]
    assert simplified[-1] == points[-1]
    assert Point2D(3, 5) in simplified
    assert Point2D(1, 0.1) not in simplified


def test_visvalingam_hits_target_exactly():
    data = generate_series(500, seed=2)
    sampled = visvalingam_sampling(data, 60)
    assert len(sampled) == 60
    assert sampled[0] is data[0] and sampled[-1] is data[-1]


def test_visvalingam_drops_flat_points_first():
    data = _rows([0, 0, 0, 0, 10, 0, 0, 0, 0])
    sampled = visvalingam_sampling(data, 5)
    assert data[4] in sampled


def test_adaptive_prefers_volatile_regions():
    flat = [0.0] * 500
    noisy = list(np.random.default_rng(0).normal(0, 20, size=500))
    data = _rows(flat + noisy)
    sampled = adaptive_sampling(data, 100)
    assert len(sampled) <= 100
    assert sampled[0] is data[0] and sampled[-1] is data[-1]
    in_noisy = sum(1 for row in sampled if row["x"] >= 500)
    assert in_noisy > len(sampled) / 2


def test_hybrid_and_recommendation():
    assert recommend_algorithm(0.1) == "uniform"
    assert recommend_algorithm(0.5) == "lttb"
    assert recommend_algorithm(1.5) == "peaks"
    assert recommend_algorithm(math.nan) == "lttb"

    steady = _rows([100 + (i % 3) for i in range(300)])
    assert calculate_volatility(steady) < 0.2
    assert hybrid_sampling(steady, 30) == uniform_sampling(steady, 30)


def test_zero_mean_volatility_is_nan():
    data = _rows([-1, 1] * 10)
    assert math.isnan(calculate_volatility(data))
    assert len(hybrid_sampling(data, 5)) <= 5


def test_value_extraction_fallbacks():
    rows = [{"x": "2024-01-01", "value": "oops"}, {"x": "2024-01-02", "value": "2.5"}, {"value": None}]
    ys = y_values(rows, "value")
    assert ys.tolist() == [0.0, 2.5, 0.0]
    xs = x_values(rows, "x")
    assert xs[1] - xs[0] == pytest.approx(86_400_000)
    assert xs[2] == 2  # missing x falls back to the index


def test_unknown_algorithm_rejected():
    with pytest.raises(ValueError):
        SamplingConfig(algorithm="bogus")
    with pytest.raises(ValueError):
        sample_data(_rows(range(5)), {"algorithm": "bogus"})
