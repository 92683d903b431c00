"""Reduce several series onto one shared x axis.

Each series keeps the same set of x positions after alignment so that
crosshair lookups and tooltips can compare lines point by point.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from backend.models.series import coerce_number
from core.datetime_utils import is_date_string, to_epoch_ms

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 100
PASSTHROUGH_LIMIT = 1000


@dataclass(frozen=True)
class AlignmentMetadata:
    original_points: int
    sampled_points: int
    compression_ratio: float
    target_sample_size: int
    unified_x_values: int
    lines_processed: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalPoints": self.original_points,
            "sampledPoints": self.sampled_points,
            "compressionRatio": self.compression_ratio,
            "targetSampleSize": self.target_sample_size,
            "unifiedXValues": self.unified_x_values,
            "linesProcessed": self.lines_processed,
        }


@dataclass
class AlignmentResult:
    lines: list[dict[str, Any]]
    metadata: Optional[AlignmentMetadata] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": self.lines,
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def x_token(value) -> str:
    """String identity of an x value used for de-duplication and lookup."""
    if isinstance(value, (datetime, date, pd.Timestamp)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def numeric_x(value) -> float:
    """Distance coordinate for an x value: dates as epoch ms, numbers as-is, else 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, (datetime, date, pd.Timestamp)) or is_date_string(value):
        ms = to_epoch_ms(value)
        return ms if ms is not None else 0.0
    number = coerce_number(value)
    return number if math.isfinite(number) else 0.0


def _sort_tokens(tokens: Sequence[str]) -> list[str]:
    """Sort x tokens by date if all are dates, numerically if all are numbers, else as text."""
    if tokens and all(is_date_string(t) for t in tokens):
        return sorted(tokens, key=lambda t: to_epoch_ms(t) or 0.0)
    numbers = [coerce_number(t) for t in tokens]
    if all(not math.isnan(n) for n in numbers):
        return [t for _, t in sorted(zip(numbers, tokens), key=lambda pair: pair[0])]
    return sorted(tokens)


def create_sampling_indices(total_length: int, target_size: int) -> list[int]:
    """Endpoints plus a uniform spread of interior indices, sorted and unique."""
    if total_length <= 0:
        return []
    indices = {0}
    if total_length > 1:
        indices.add(total_length - 1)
    remaining = target_size - len(indices)
    if remaining > 0 and total_length > 2:
        step = (total_length - 1) / (remaining + 1)
        for i in range(1, remaining + 1):
            index = int(math.floor(step * i + 0.5))
            if 0 < index < total_length - 1:
                indices.add(index)
    return sorted(indices)


def find_nearest_point(
    data: Sequence[Mapping[str, Any]],
    target_x,
    x_key: str,
) -> Optional[Mapping[str, Any]]:
    """Linear scan for the row whose x is closest to ``target_x``; first wins on ties."""
    positions = [
        (numeric_x(row[x_key]), row) for row in data if isinstance(row, Mapping) and x_key in row
    ]
    return _nearest(positions, numeric_x(target_x))


def _nearest(positions, target: float):
    nearest = None
    best = math.inf
    for x, row in positions:
        distance = abs(x - target)
        if distance < best:
            best = distance
            nearest = row
    return nearest


def sample_large_dataset(data: Sequence[Any], sample_rate: float = 0.1) -> list:
    """Rate-based reduction; datasets up to 1000 items pass through unchanged."""
    if len(data) <= PASSTHROUGH_LIMIT:
        return list(data)
    target = max(MIN_SAMPLE_SIZE, int(math.floor(len(data) * sample_rate)))
    return [data[i] for i in create_sampling_indices(len(data), target)]


def _line_identity(line: Mapping[str, Any], index: int) -> dict[str, Any]:
    return {
        "id": line.get("id") or f"line-{index}",
        "label": line.get("label") or f"Line {index}",
        "color": line.get("color") or "",
    }


def _line_rows(line: Any, index: int) -> Optional[list]:
    if not isinstance(line, Mapping):
        logger.warning("Skipping line %d: expected a mapping, got %s", index, type(line).__name__)
        return None
    rows = line.get("data")
    if not isinstance(rows, (list, tuple)):
        logger.warning("Skipping line %d (%s): data is not a list", index, line.get("id"))
        return None
    return list(rows)


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

def align_series(
    lines: Sequence[Mapping[str, Any]],
    sample_rate: float = 0.1,
    x_key: str = "date",
) -> AlignmentResult:
    """Sample every line onto the same reduced set of x positions.

    Malformed lines and rows are logged and skipped. If anything unexpected
    goes wrong the input is returned untouched with no metadata.
    """
    if not lines:
        return AlignmentResult(lines=list(lines or []), metadata=None)
    try:
        return _align(lines, sample_rate, x_key)
    except Exception:
        logger.exception("Series alignment failed; returning the original lines")
        return AlignmentResult(lines=list(lines), metadata=None)


def _align(lines: Sequence[Mapping[str, Any]], sample_rate: float, x_key: str) -> AlignmentResult:
    rows_by_line: list[Optional[list]] = [_line_rows(line, i) for i, line in enumerate(lines)]

    seen: dict[str, None] = {}
    skipped = 0
    for rows in rows_by_line:
        for row in rows or ():
            if not isinstance(row, Mapping) or x_key not in row:
                skipped += 1
                continue
            seen.setdefault(x_token(row[x_key]), None)
    if skipped:
        logger.warning("Skipped %d points without a usable %r field", skipped, x_key)

    sorted_x = _sort_tokens(list(seen))
    max_length = max((len(rows) for rows in rows_by_line if rows), default=0)
    target_size = max(MIN_SAMPLE_SIZE, int(math.floor(max_length * sample_rate)))
    if len(sorted_x) <= target_size:
        shared_x = sorted_x
    else:
        shared_x = [sorted_x[i] for i in create_sampling_indices(len(sorted_x), target_size)]
    logger.debug(
        "Aligning %d lines on %d of %d x positions (target %d)",
        len(lines), len(shared_x), len(sorted_x), target_size,
    )

    aligned: list[dict[str, Any]] = []
    for index, (line, rows) in enumerate(zip(lines, rows_by_line)):
        identity = _line_identity(line if isinstance(line, Mapping) else {}, index)
        if not rows:
            aligned.append({**identity, "data": []})
            continue
        lookup: dict[str, Mapping[str, Any]] = {}
        positions = None
        for row in rows:
            if isinstance(row, Mapping) and x_key in row:
                lookup[x_token(row[x_key])] = row
        sampled = []
        for token in shared_x:
            row = lookup.get(token)
            if row is None:
                if positions is None:
                    positions = [(numeric_x(r[x_key]), r) for r in lookup.values()]
                row = _nearest(positions, numeric_x(token))
            if row is not None:
                sampled.append(row)
        aligned.append({**identity, "data": sampled})

    original_points = sum(len(rows) for rows in rows_by_line if rows)
    sampled_points = sum(len(line["data"]) for line in aligned)
    metadata = AlignmentMetadata(
        original_points=original_points,
        sampled_points=sampled_points,
        compression_ratio=original_points / sampled_points if sampled_points else 1.0,
        target_sample_size=target_size,
        unified_x_values=len(shared_x),
        lines_processed=len(aligned),
    )
    return AlignmentResult(lines=aligned, metadata=metadata)


__all__ = [
    "AlignmentMetadata",
    "AlignmentResult",
    "align_series",
    "create_sampling_indices",
    "find_nearest_point",
    "numeric_x",
    "sample_large_dataset",
    "x_token",
]
