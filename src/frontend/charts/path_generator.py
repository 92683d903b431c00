from __future__ import annotations
from typing import Any, Iterable, Sequence

from core.cache import FifoCache
from core.geometry import clamp

DEFAULT_TENSION = 0.3


def _xy(point: Any) -> tuple[float, float]:
    if isinstance(point, (tuple, list)):
        return float(point[0]), float(point[1])
    return float(point.x), float(point.y)


def _fmt(value: float) -> str:
    # + 0.0 turns a rounded -0.0 into 0.0
    return f"{round(value, 2) + 0.0:.2f}"


def _pair(x: float, y: float) -> str:
    return f"{_fmt(x)},{_fmt(y)}"


def create_straight_path(points: Iterable[Any]) -> str:
    """``M x0,y0 L x1,y1 ...`` with two-decimal coordinates; empty input gives ``""``."""
    coords = [_xy(p) for p in points]
    if not coords:
        return ""
    segments = [f"M{_pair(*coords[0])}"]
    segments.extend(f"L{_pair(x, y)}" for x, y in coords[1:])
    return " ".join(segments)


def _smooth_path(coords: Sequence[tuple[float, float]], tension: float) -> str:
    t = clamp(tension, 0.0, 1.0) * 0.5
    if len(coords) == 2:
        (x0, y0), (x1, y1) = coords
        dx = x1 - x0
        return (
            f"M{_pair(x0, y0)} "
            f"C{_pair(x0 + dx * t, y0)} {_pair(x1 - dx * t, y1)} {_pair(x1, y1)}"
        )

    segments = [f"M{_pair(*coords[0])}"]
    last = len(coords) - 1
    for i in range(last):
        p0 = coords[i - 1] if i > 0 else coords[0]
        p1 = coords[i]
        p2 = coords[i + 1]
        p3 = coords[i + 2] if i + 2 <= last else coords[last]
        cp1 = (p1[0] + (p2[0] - p0[0]) * t, p1[1] + (p2[1] - p0[1]) * t)
        cp2 = (p2[0] - (p3[0] - p1[0]) * t, p2[1] - (p3[1] - p1[1]) * t)
        segments.append(f"C{_pair(*cp1)} {_pair(*cp2)} {_pair(*p2)}")
    return " ".join(segments)


class PathGenerator:
    """Builds path strings; smooth paths are memoised in a bounded FIFO cache."""

    def __init__(self, max_cache_size: int = 100) -> None:
        self._cache: FifoCache[str, str] = FifoCache(max_cache_size)

    @staticmethod
    def create_straight_path(points: Iterable[Any]) -> str:
        return create_straight_path(points)

    def create_smooth_path(self, points: Iterable[Any], tension: float = DEFAULT_TENSION) -> str:
        """Catmull-Rom derived cubic Bezier path through ``points``.

        Fewer than two points fall back to the straight path.
        """
        coords = [_xy(p) for p in points]
        if len(coords) < 2:
            return create_straight_path(coords)

        tension = clamp(float(tension), 0.0, 1.0)
        key = "|".join(_pair(x, y) for x, y in coords) + f"_{tension}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        path = _smooth_path(coords, tension)
        self._cache.set(key, path)
        return path

    def create_path(self, points: Iterable[Any], curve: str = "straight", tension: float = DEFAULT_TENSION) -> str:
        if curve == "smooth":
            return self.create_smooth_path(points, tension)
        return create_straight_path(points)

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> dict[str, int]:
        return {"size": len(self._cache), "maxSize": self._cache.max_size}

    @property
    def cache(self) -> FifoCache:
        return self._cache


__all__ = ["DEFAULT_TENSION", "PathGenerator", "create_straight_path"]
