"""Small numeric helpers shared by the sampling engine and the chart layer."""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Point2D:
    """A point in pixel space."""

    x: float
    y: float


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp ``value`` into ``[minimum, maximum]``."""
    return min(max(value, minimum), maximum)


def lerp(start: float, end: float, factor: float) -> float:
    return start + (end - start) * factor


def distance(p1: Point2D, p2: Point2D) -> float:
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    return math.sqrt(dx * dx + dy * dy)


def is_point_in_rect(point: Point2D, x: float, y: float, width: float, height: float) -> bool:
    """Return ``True`` when ``point`` lies inside (or on the edge of) the rectangle."""
    return x <= point.x <= x + width and y <= point.y <= y + height


def perpendicular_distance(point: Point2D, line_start: Point2D, line_end: Point2D) -> float:
    """Distance from ``point`` to the segment ``line_start``-``line_end``.

    The projection is clamped to the segment, so points beyond either end
    measure to the nearest endpoint. A zero-length segment degenerates to the
    plain point-to-point distance.
    """
    a = line_end.x - line_start.x
    b = line_end.y - line_start.y
    c = point.x - line_start.x
    d = point.y - line_start.y

    len_sq = a * a + b * b
    if len_sq == 0:
        return math.sqrt(c * c + d * d)

    param = (a * c + b * d) / len_sq
    if param < 0:
        xx, yy = line_start.x, line_start.y
    elif param > 1:
        xx, yy = line_end.x, line_end.y
    else:
        xx = line_start.x + param * a
        yy = line_start.y + param * b

    dx = point.x - xx
    dy = point.y - yy
    return math.sqrt(dx * dx + dy * dy)


def triangle_area(p1: Point2D, p2: Point2D, p3: Point2D) -> float:
    return abs((p1.x * (p2.y - p3.y) + p2.x * (p3.y - p1.y) + p3.x * (p1.y - p2.y)) / 2.0)


def binary_search_nearest(
    items: Sequence[T],
    target: float,
    get_value: Callable[[T, int], float],
) -> int:
    """Index of the item whose value is nearest to ``target``.

    ``items`` must be sorted ascending by ``get_value``. Returns 0 for an
    empty sequence.
    """
    left = 0
    right = len(items) - 1
    closest = 0
    min_distance = math.inf

    while left <= right:
        mid = (left + right) // 2
        mid_value = get_value(items[mid], mid)
        dist = abs(target - mid_value)
        if dist < min_distance:
            min_distance = dist
            closest = mid
        if mid_value < target:
            left = mid + 1
        else:
            right = mid - 1

    return closest


__all__ = [
    "Point2D",
    "binary_search_nearest",
    "clamp",
    "distance",
    "is_point_in_rect",
    "lerp",
    "perpendicular_distance",
    "triangle_area",
]
