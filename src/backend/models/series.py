from __future__ import annotations
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence

import pandas as pd

from core.datetime_utils import is_date_like, parse_dates, to_timestamp
from core.geometry import Point2D

# Raw rows are open field maps; algorithms read named fields by convention.
DataPoint = Mapping[str, Any]


@dataclass(frozen=True)
class SeriesPoint:
    """A raw row resolved to its x/y values at ingestion time.

    ``x`` is a float for numeric axes, a ``pd.Timestamp`` for date axes, or the
    row index when no usable x field exists.
    """

    x: Any
    y: float
    raw: Mapping[str, Any]
    index: int = 0


@dataclass(frozen=True)
class LineData:
    """One series of a multi-line chart; ``id`` is the stable join key."""

    id: str
    label: str
    color: str = ""
    data: tuple = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, index: int = 0) -> "LineData":
        rows = payload.get("data") or ()
        return cls(
            id=str(payload.get("id") or f"line-{index}"),
            label=str(payload.get("label") or f"Line {index}"),
            color=str(payload.get("color") or ""),
            data=tuple(rows) if isinstance(rows, (list, tuple)) else (),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "color": self.color,
            "data": [dict(row) for row in self.data if isinstance(row, Mapping)],
        }


def coerce_number(value) -> float:
    """Numeric cast used by the sampling engine; returns NaN when impossible."""
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return math.nan


def is_valid_number(value) -> bool:
    """``True`` for finite int/float values (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def freeze_row(row: Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(row, MappingProxyType):
        return row
    return MappingProxyType(dict(row))


def detect_x_key(row: Mapping[str, Any]) -> Optional[str]:
    """First field whose value is a date or a parseable date string."""
    for key, value in row.items():
        if is_date_like(value):
            return key
    return None


def numeric_keys(row: Mapping[str, Any], *, exclude: Iterable[str] = ()) -> list[str]:
    skipped = set(exclude)
    return [key for key, value in row.items() if key not in skipped and is_valid_number(value)]


def resolve_x(row: Mapping[str, Any], x_key: Optional[str], index: int):
    """Resolve the x value of ``row``: date, number or the positional index."""
    if not x_key or x_key not in row:
        return index
    value = row[x_key]
    if is_valid_number(value):
        return float(value)
    ts = to_timestamp(value) if is_date_like(value) else None
    if ts is not None:
        return ts
    return index


def resolve_x_values(rows: Sequence[Mapping[str, Any]], x_key: Optional[str], indices: Sequence[int]) -> list:
    """Column-wise :func:`resolve_x`; date strings are parsed in one pass."""
    if not x_key:
        return list(indices)
    values = [row.get(x_key) for row in rows]
    resolved: list = [float(value) if is_valid_number(value) else None for value in values]
    pending = [position for position, value in enumerate(resolved) if value is None]
    if pending:
        dates = parse_dates(values[position] for position in pending).tolist()
        for position, ts in zip(pending, dates):
            resolved[position] = indices[position] if pd.isna(ts) else ts
    return resolved


def ingest_points(
    rows: Sequence[Mapping[str, Any]],
    y_key: str,
    *,
    x_key: Optional[str] = None,
) -> tuple[SeriesPoint, ...]:
    """Build typed points from raw rows, skipping rows whose y is not numeric.

    When ``x_key`` is not given the first date-like field of the first row is
    used; without one the x axis falls back to the row index.
    """
    if not rows:
        return ()
    if x_key is None and isinstance(rows[0], Mapping):
        x_key = detect_x_key(rows[0])
    kept = [
        (index, row)
        for index, row in enumerate(rows)
        if isinstance(row, Mapping) and is_valid_number(row.get(y_key))
    ]
    xs = resolve_x_values([row for _, row in kept], x_key, [index for index, _ in kept])
    return tuple(
        SeriesPoint(x=x, y=float(row[y_key]), raw=freeze_row(row), index=index)
        for (index, row), x in zip(kept, xs)
    )


__all__ = [
    "DataPoint",
    "LineData",
    "Point2D",
    "SeriesPoint",
    "coerce_number",
    "detect_x_key",
    "freeze_row",
    "ingest_points",
    "is_valid_number",
    "numeric_keys",
    "resolve_x",
    "resolve_x_values",
]
