"""Reduction algorithms for large line-chart datasets.

Every function takes a sequence of row mappings and returns a new list that
keeps the original rows (never copies) in their original relative order.
When the input already fits the budget it is returned as-is (as a new
list). Douglas-Peucker is the exception: it is driven by a tolerance rather
than a point budget and may simplify even small inputs.

Y values are read with a plain numeric cast. Values that cannot be cast
become NaN and are treated as 0.0 so comparisons stay well defined.
"""

from __future__ import annotations
import heapq
import logging
import math
from typing import Any, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from backend.models.series import Point2D, coerce_number
from core.datetime_utils import to_epoch_ms
from core.geometry import perpendicular_distance

logger = logging.getLogger(__name__)

Rows = Sequence[Mapping[str, Any]]

# Base weight added to every |dy| so flat regions still receive points.
ADAPTIVE_BASE_WEIGHT = 0.1
LOW_VOLATILITY = 0.2
HIGH_VOLATILITY = 0.8
_MAX_EPSILON_ESCALATIONS = 64


# ---------------------------------------------------------------------------
# Value extraction
# ---------------------------------------------------------------------------

def _column(data: Rows, key: str) -> list:
    return [row.get(key) if isinstance(row, Mapping) else None for row in data]


def y_values(data: Rows, key: str) -> np.ndarray:
    """Numeric view of ``key``; NaN (failed casts) become 0.0."""
    values = np.fromiter((coerce_number(v) for v in _column(data, key)), dtype=float, count=len(data))
    values[np.isnan(values)] = 0.0
    return values


def x_values(data: Rows, key: str) -> np.ndarray:
    """Numeric x axis: numbers as-is, dates as epoch ms, otherwise the row index."""
    raw = _column(data, key)
    values = np.fromiter((coerce_number(v) for v in raw), dtype=float, count=len(raw))
    missing = np.flatnonzero(np.isnan(values))
    if missing.size:
        values[missing] = _dates_as_ms([raw[i] for i in missing])
        still_missing = np.isnan(values)
        values[still_missing] = np.flatnonzero(still_missing)
    return values


def _dates_as_ms(raw: list) -> np.ndarray:
    try:
        parsed = pd.to_datetime(pd.Series(raw, dtype=object), errors="coerce")
        if getattr(parsed.dt, "tz", None) is not None:
            parsed = parsed.dt.tz_localize(None)
        ms = (parsed - pd.Timestamp(0)) / pd.Timedelta(milliseconds=1)
        return ms.to_numpy(dtype=float, na_value=np.nan)
    except (TypeError, ValueError, OverflowError):
        # Mixed timezone-aware/naive inputs; resolve one value at a time.
        out = [to_epoch_ms(v) for v in raw]
        return np.array([np.nan if v is None else v for v in out], dtype=float)


# ---------------------------------------------------------------------------
# 1. Uniform
# ---------------------------------------------------------------------------

def uniform_sampling(data: Rows, target_points: int) -> list:
    """Evenly spaced index strides; first and last slots pinned to the endpoints."""
    if target_points < 1:
        return []
    n = len(data)
    if n <= target_points:
        return list(data)
    if target_points == 1:
        return [data[0]]

    step = n / target_points
    indices = [int(math.floor(i * step + 0.5)) for i in range(target_points)]
    indices[0] = 0
    indices[-1] = n - 1
    return [data[i] for i in indices]


# ---------------------------------------------------------------------------
# 2. Peak-preserving
# ---------------------------------------------------------------------------

def peaks_sampling(data: Rows, target_points: int, y_key: str = "value") -> list:
    """Keep the most prominent local extrema, then fill the budget uniformly.

    A point's importance is ``|v - mean(prev, next)|``. Equal importance keeps
    discovery order.
    """
    if target_points < 1:
        return []
    n = len(data)
    if n <= target_points:
        return list(data)
    if target_points == 1:
        return [data[0]]

    values = y_values(data, y_key)
    prev, curr, nxt = values[:-2], values[1:-1], values[2:]
    extreme = ((curr > prev) & (curr > nxt)) | ((curr < prev) & (curr < nxt))
    candidates = np.flatnonzero(extreme) + 1
    importance = np.abs(values[candidates] - (values[candidates - 1] + values[candidates + 1]) / 2)
    ranked = candidates[np.argsort(-importance, kind="stable")]

    selected = {0, n - 1}
    selected.update(ranked[: target_points - 2].tolist())

    remaining = target_points - len(selected)
    if remaining > 0:
        leftover = np.setdiff1d(np.arange(n), np.fromiter(selected, dtype=int, count=len(selected)))
        step = leftover.size / remaining
        picks = np.floor(np.arange(remaining) * step + 0.5).astype(int)
        selected.update(leftover[picks].tolist())

    return [data[i] for i in sorted(selected)]


# ---------------------------------------------------------------------------
# 3. Douglas-Peucker
# ---------------------------------------------------------------------------

def _segment_distances(xs, ys, x0, y0, x1, y1) -> np.ndarray:
    a = x1 - x0
    b = y1 - y0
    c = xs - x0
    d = ys - y0
    len_sq = a * a + b * b
    if len_sq == 0:
        return np.sqrt(c * c + d * d)
    param = np.clip((a * c + b * d) / len_sq, 0.0, 1.0)
    dx = xs - (x0 + param * a)
    dy = ys - (y0 + param * b)
    return np.sqrt(dx * dx + dy * dy)


def douglas_peucker_indices(xs: np.ndarray, ys: np.ndarray, epsilon: float) -> np.ndarray:
    """Indices retained by Ramer-Douglas-Peucker for tolerance ``epsilon``."""
    n = len(xs)
    if n <= 2:
        return np.arange(n)
    keep = np.zeros(n, dtype=bool)
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]
    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue
        dists = _segment_distances(
            xs[start + 1:end], ys[start + 1:end], xs[start], ys[start], xs[end], ys[end]
        )
        rel = int(np.argmax(dists))
        if dists[rel] > epsilon:
            index = start + 1 + rel
            keep[index] = True
            stack.append((start, index))
            stack.append((index, end))
    return np.flatnonzero(keep)


def douglas_peucker(points: Sequence[Point2D], epsilon: float = 1.0) -> list[Point2D]:
    """Simplify a pixel-space polyline."""
    if len(points) <= 2:
        return list(points)
    start, end = points[0], points[-1]
    max_distance = 0.0
    max_index = 0
    for i in range(1, len(points) - 1):
        dist = perpendicular_distance(points[i], start, end)
        if dist > max_distance:
            max_distance = dist
            max_index = i
    if max_distance > epsilon:
        left = douglas_peucker(points[: max_index + 1], epsilon)
        right = douglas_peucker(points[max_index:], epsilon)
        return left[:-1] + right
    return [start, end]


def douglas_peucker_sampling(
    data: Rows,
    epsilon: float = 1.0,
    x_key: str = "x",
    y_key: str = "value",
    target_points: Optional[int] = None,
) -> list:
    """Tolerance-driven simplification returning the original rows.

    When ``target_points`` is given and the simplified line is still too
    long, the tolerance is doubled until the result fits.
    """
    if target_points is not None and target_points < 1:
        return []
    n = len(data)
    if n == 0:
        return []
    if target_points == 1:
        return [data[0]]

    xs = x_values(data, x_key)
    ys = y_values(data, y_key)
    tolerance = max(0.0, float(epsilon))
    indices = douglas_peucker_indices(xs, ys, tolerance)

    escalations = 0
    while target_points is not None and indices.size > target_points:
        if escalations >= _MAX_EPSILON_ESCALATIONS:
            logger.warning(
                "Douglas-Peucker did not converge to %d points; falling back to uniform", target_points
            )
            return uniform_sampling([data[i] for i in indices], target_points)
        tolerance = tolerance * 2 if tolerance > 0 else 1.0
        indices = douglas_peucker_indices(xs, ys, tolerance)
        escalations += 1

    return [data[i] for i in indices]


# ---------------------------------------------------------------------------
# 4. Visvalingam-Whyatt
# ---------------------------------------------------------------------------

def visvalingam_sampling(
    data: Rows,
    target_points: int,
    x_key: str = "x",
    y_key: str = "value",
) -> list:
    """Repeatedly drop the point with the smallest effective triangle area.

    Endpoints have infinite area and are never removed. Neighbour areas are
    recomputed after every removal and never fall below the area just
    removed, so the elimination order stays monotonic.
    """
    if target_points < 1:
        return []
    n = len(data)
    if n <= target_points:
        return list(data)
    if target_points == 1:
        return [data[0]]

    xs = x_values(data, x_key).tolist()
    ys = y_values(data, y_key).tolist()
    prev = list(range(-1, n - 1))
    nxt = list(range(1, n + 1))

    def area_at(i: int) -> float:
        a, b = prev[i], nxt[i]
        return abs(xs[a] * (ys[i] - ys[b]) + xs[i] * (ys[b] - ys[a]) + xs[b] * (ys[a] - ys[i])) / 2.0

    areas = [math.inf] * n
    for i in range(1, n - 1):
        areas[i] = area_at(i)
    heap = [(areas[i], i) for i in range(1, n - 1)]
    heapq.heapify(heap)

    removed = [False] * n
    remaining = n
    while remaining > target_points and heap:
        area, i = heapq.heappop(heap)
        if removed[i] or area != areas[i]:
            continue
        removed[i] = True
        remaining -= 1
        p, q = prev[i], nxt[i]
        nxt[p] = q
        prev[q] = p
        for j in (p, q):
            if 0 < j < n - 1:
                areas[j] = max(area_at(j), area)
                heapq.heappush(heap, (areas[j], j))

    return [row for row, gone in zip(data, removed) if not gone]


# ---------------------------------------------------------------------------
# 5. Largest-Triangle-Three-Buckets
# ---------------------------------------------------------------------------

def lttb_sampling(
    data: Rows,
    target_points: int,
    x_key: str = "x",
    y_key: str = "value",
) -> list:
    """LTTB: one point per bucket, maximising the triangle with its neighbours.

    Needs at least three target points for buckets; with one or two only the
    endpoints are returned.
    """
    if target_points < 1:
        return []
    n = len(data)
    if n <= target_points:
        return list(data)
    if target_points <= 2:
        return [data[0], data[-1]][:target_points]

    xs = x_values(data, x_key)
    ys = y_values(data, y_key)
    bucket_size = (n - 2) / (target_points - 2)

    indices = [0]
    a = 0
    for i in range(1, target_points - 1):
        start = int((i - 1) * bucket_size) + 1
        end = min(int(i * bucket_size) + 1, n - 1)

        next_start = int(i * bucket_size) + 1
        next_end = min(int((i + 1) * bucket_size) + 1, n)
        avg_x = xs[next_start:next_end].mean()
        avg_y = ys[next_start:next_end].mean()

        ax, ay = xs[a], ys[a]
        areas = np.abs((ax - avg_x) * (ys[start:end] - ay) - (ax - xs[start:end]) * (avg_y - ay))
        a = start + int(np.argmax(areas))
        indices.append(a)
    indices.append(n - 1)

    return [data[i] for i in indices]


# ---------------------------------------------------------------------------
# 6. Adaptive
# ---------------------------------------------------------------------------

def adaptive_sampling(data: Rows, target_points: int, y_key: str = "value") -> list:
    """Spend more points where the series changes fast.

    Each step carries weight ``|dy| + 0.1``; a point is emitted whenever the
    running weight crosses the next of ``target_points - 1`` even thresholds.
    """
    if target_points < 1:
        return []
    n = len(data)
    if n <= target_points:
        return list(data)
    if target_points == 1:
        return [data[0]]

    values = y_values(data, y_key)
    weights = (np.abs(np.diff(values)) + ADAPTIVE_BASE_WEIGHT).tolist()
    step = math.fsum(weights) / (target_points - 1)

    sampled = [data[0]]
    cumulative = 0.0
    threshold = step
    for i in range(1, n - 1):
        cumulative += weights[i - 1]
        if cumulative >= threshold and len(sampled) < target_points - 1:
            sampled.append(data[i])
            threshold += step
    sampled.append(data[-1])
    return sampled


# ---------------------------------------------------------------------------
# 7. Hybrid + volatility
# ---------------------------------------------------------------------------

def coefficient_of_variation(values: np.ndarray) -> float:
    """``std / |mean|`` (population std); NaN when the mean is zero."""
    if values.size < 2:
        return 0.0
    mean = float(values.mean())
    if mean == 0:
        return math.nan
    return float(values.std()) / abs(mean)


def calculate_volatility(data: Rows, y_key: str = "value") -> float:
    if len(data) < 2:
        return 0.0
    return coefficient_of_variation(y_values(data, y_key))


def recommend_algorithm(volatility: float) -> str:
    """Low volatility -> uniform, high -> peaks, otherwise (or undefined) -> LTTB."""
    if math.isnan(volatility):
        return "lttb"
    if volatility < LOW_VOLATILITY:
        return "uniform"
    if volatility > HIGH_VOLATILITY:
        return "peaks"
    return "lttb"


def hybrid_sampling(
    data: Rows,
    target_points: int,
    x_key: str = "x",
    y_key: str = "value",
) -> list:
    if target_points < 1:
        return []
    if len(data) <= target_points:
        return list(data)

    choice = recommend_algorithm(calculate_volatility(data, y_key))
    logger.debug("Hybrid sampling picked %s for %d points", choice, len(data))
    if choice == "uniform":
        return uniform_sampling(data, target_points)
    if choice == "peaks":
        return peaks_sampling(data, target_points, y_key)
    return lttb_sampling(data, target_points, x_key, y_key)


__all__ = [
    "adaptive_sampling",
    "calculate_volatility",
    "coefficient_of_variation",
    "douglas_peucker",
    "douglas_peucker_indices",
    "douglas_peucker_sampling",
    "hybrid_sampling",
    "lttb_sampling",
    "peaks_sampling",
    "recommend_algorithm",
    "uniform_sampling",
    "visvalingam_sampling",
    "x_values",
    "y_values",
]
