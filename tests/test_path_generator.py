"""Tests for SVG-style path generation."""
from pathlib import Path
import sys

sys.path.insert(0, str((Path(__file__).parent.parent / "src").resolve()))

from backend.models.series import Point2D
from frontend.charts.path_generator import PathGenerator, create_straight_path


def test_straight_path_format():
    assert create_straight_path([]) == ""
    assert create_straight_path([(1, 2)]) == "M1.00,2.00"
    assert create_straight_path([(1, 2), (3, 4)]) == "M1.00,2.00 L3.00,4.00"
    assert create_straight_path([Point2D(1.006, -0.001)]) == "M1.01,0.00"


def test_smooth_two_points_is_single_cubic():
    generator = PathGenerator()
    path = generator.create_smooth_path([(0, 0), (10, 10)], tension=0.3)
    assert path == "M0.00,0.00 C1.50,0.00 8.50,10.00 10.00,10.00"


def test_smooth_path_passes_through_points():
    generator = PathGenerator()
    points = [(0, 0), (10, 5), (20, 0), (30, 5)]
    path = generator.create_smooth_path(points)
    assert path.startswith("M0.00,0.00 C")
    assert path.count("C") == 3
    for x, y in points[1:]:
        assert f"{x:.2f},{y:.2f}" in path


def test_smooth_path_with_one_point_falls_back():
    generator = PathGenerator()
    assert generator.create_smooth_path([(3, 4)]) == "M3.00,4.00"
    assert generator.create_smooth_path([]) == ""
    assert generator.get_cache_stats()["size"] == 0


def test_tension_is_clamped():
    generator = PathGenerator()
    points = [(0, 0), (10, 10)]
    assert generator.create_smooth_path(points, tension=5) == generator.create_smooth_path(points, tension=1)
    assert generator.create_smooth_path(points, tension=-1) == "M0.00,0.00 C0.00,0.00 10.00,10.00 10.00,10.00"


def test_smooth_path_is_memoised():
    generator = PathGenerator()
    points = [(0, 0), (5, 5), (10, 0)]
    first = generator.create_smooth_path(points)
    second = generator.create_smooth_path(list(points))
    assert first == second
    assert generator.get_cache_stats() == {"size": 1, "maxSize": 100}


def test_cache_evicts_oldest_entry():
    generator = PathGenerator(max_cache_size=100)
    for i in range(101):
        generator.create_smooth_path([(0, 0), (i, i)])
    stats = generator.get_cache_stats()
    assert stats["size"] == 100
    keys = generator.cache.keys()
    assert not keys[0].startswith("0.00,0.00|0.00,0.00_")
    assert keys[-1].startswith("0.00,0.00|100.00,100.00_")
    generator.clear_cache()
    assert generator.get_cache_stats()["size"] == 0


def test_create_path_dispatch():
    generator = PathGenerator()
    points = [(0, 0), (10, 10)]
    assert generator.create_path(points) == "M0.00,0.00 L10.00,10.00"
    assert generator.create_path(points, "smooth").startswith("M0.00,0.00 C")
