"""Tests for the sampling engine operations (results, batch, benchmark, analysis)."""
from pathlib import Path
import math
import sys

import pytest

sys.path.insert(0, str((Path(__file__).parent.parent / "src").resolve()))

from backend.models.options import SamplingConfig
from backend.services.data_generator import generate_series, generate_test_lines
from backend.services.sampling import (
    analyze_data,
    batch_sample,
    benchmark_sampling,
    calculate_data_statistics,
    get_optimal_sampling_config,
    run_sampling,
)


def test_run_sampling_reports_wire_shape():
    data = generate_series(1000, seed=1)
    result = run_sampling(data, {"algorithm": "lttb", "targetPoints": 100})
    payload = result.to_dict()
    assert payload["success"] is True
    assert payload["originalLength"] == 1000
    assert payload["sampledLength"] == 100
    assert payload["compressionRatio"] == pytest.approx(10.0)
    assert payload["algorithm"] == "lttb"
    assert payload["processingTime"] >= 0
    assert "error" not in payload


def test_run_sampling_empty_data_has_neutral_ratio():
    result = run_sampling([], SamplingConfig(algorithm="uniform", target_points=10))
    assert result.success
    assert result.sampled_length == 0
    assert result.compression_ratio == 1.0


def test_batch_reuses_first_config_and_reports_progress():
    datasets = [generate_series(300, seed=i) for i in range(10)]
    calls = []
    batch = batch_sample(datasets, [{"algorithm": "uniform", "targetPoints": 30}], lambda c, t: calls.append((c, t)))
    assert batch.datasets_processed == 10
    assert all(r.sampled_length == 30 for r in batch.results)
    assert calls and calls[-1][1] == 10
    assert [c for c, _ in calls] == list(range(1, 11))
    assert batch.to_dict()["results"][0]["algorithm"] == "uniform"


def test_small_batch_has_no_progress():
    calls = []
    batch_sample([generate_series(50, seed=0)] * 3, [None], lambda c, t: calls.append(c))
    assert calls == []


def test_benchmark_reports_each_algorithm():
    data = generate_series(2000, seed=4)
    report = benchmark_sampling(data, ["lttb", "uniform", "bogus"], 200)
    assert report["lttb"].success and report["lttb"].sampled_points == 200
    assert report["lttb"].compression_ratio == pytest.approx(10.0)
    assert report["uniform"].to_dict()["sampledPoints"] == 200
    bogus = report["bogus"]
    assert not bogus.success
    assert bogus.compression_ratio == 1.0
    assert "bogus" in bogus.error


def test_benchmark_defaults_to_all_algorithms():
    report = benchmark_sampling(generate_series(500, seed=1), target_points=50)
    assert set(report) == {"uniform", "peaks", "douglasPeucker", "visvalingam", "lttb", "adaptive", "hybrid"}
    assert all(entry.success for entry in report.values())


def test_analyze_data_recommendation():
    data = generate_test_lines(500, lines=1, seed=9)[0]["data"]
    analysis = analyze_data(data)
    assert analysis.data_length == 500
    assert analysis.recommended_algorithm in {"uniform", "lttb", "peaks"}


def test_analyze_zero_mean_serialises_volatility_as_null():
    data = [{"value": v} for v in (-2, 2, -2, 2)]
    analysis = analyze_data(data)
    assert math.isnan(analysis.volatility)
    payload = analysis.to_dict()
    assert payload["volatility"] is None
    assert payload["recommendedAlgorithm"] == "lttb"


def test_data_statistics_population_std():
    data = [{"value": 1}, {"value": 2}, {"value": "3"}, {"value": 4}, {"value": "n/a"}, {"other": 9}]
    stats = calculate_data_statistics(data)
    assert stats.count == 4
    assert stats.min == 1 and stats.max == 4
    assert stats.mean == pytest.approx(2.5)
    assert stats.median == pytest.approx(2.5)
    assert stats.std == pytest.approx(math.sqrt(1.25))


def test_data_statistics_empty():
    assert calculate_data_statistics([]).to_dict() == {
        "min": 0.0, "max": 0.0, "mean": 0.0, "median": 0.0, "std": 0.0, "count": 0,
    }


@pytest.mark.parametrize(
    "length, device, algorithm, target",
    [
        (100_000, "desktop", "lttb", 800),
        (20_000, "mobile", "uniform", 250),
        (6_000, "tablet", "hybrid", 400),
        (100, "desktop", "uniform", 100),
        (60_000, "highPerformance", "lttb", 1200),
        (10_000, "unknown", "hybrid", 800),
    ],
)
def test_optimal_sampling_config(length, device, algorithm, target):
    config = get_optimal_sampling_config(length, device)
    assert config.algorithm == algorithm
    assert config.target_points == target
