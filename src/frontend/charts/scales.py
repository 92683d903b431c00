"""Linear and time scales mapping data values to pixels.

Scales extrapolate outside their domain (no clamping). A zero-width domain
maps every input to the start of the range.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Sequence

import pandas as pd

from core.datetime_utils import to_epoch_ms, to_timestamp


@dataclass(frozen=True)
class LinearScale:
    d0: float
    d1: float
    r0: float
    r1: float

    def __call__(self, value: float) -> float:
        if self.d1 == self.d0:
            return self.r0
        return self.r0 + ((float(value) - self.d0) / (self.d1 - self.d0)) * (self.r1 - self.r0)

    def domain(self) -> tuple[float, float]:
        return (self.d0, self.d1)

    def range(self) -> tuple[float, float]:
        return (self.r0, self.r1)

    def invert(self, pixel: float) -> float:
        """Data value for ``pixel``; a zero-width range returns the domain start."""
        if self.r1 == self.r0:
            return self.d0
        return self.d0 + ((float(pixel) - self.r0) / (self.r1 - self.r0)) * (self.d1 - self.d0)


@dataclass(frozen=True)
class TimeScale:
    d0: pd.Timestamp
    d1: pd.Timestamp
    r0: float
    r1: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "_start_ms", _ms(self.d0))
        object.__setattr__(self, "_span_ms", _ms(self.d1) - _ms(self.d0))

    def __call__(self, value: Any) -> float:
        if self._span_ms == 0:
            return self.r0
        offset = _ms(value) - self._start_ms
        return self.r0 + (offset / self._span_ms) * (self.r1 - self.r0)

    def domain(self) -> tuple[pd.Timestamp, pd.Timestamp]:
        return (self.d0, self.d1)

    def range(self) -> tuple[float, float]:
        return (self.r0, self.r1)

    def invert(self, pixel: float) -> pd.Timestamp:
        if self.r1 == self.r0:
            return self.d0
        fraction = (float(pixel) - self.r0) / (self.r1 - self.r0)
        return self.d0 + pd.Timedelta(milliseconds=fraction * self._span_ms)


def _ms(value: Any) -> float:
    ms = to_epoch_ms(value)
    if ms is None:
        raise ValueError(f"Not a date value: {value!r}")
    return ms


def create_linear_scale(domain: Sequence[float], range_: Sequence[float]) -> LinearScale:
    d0, d1 = domain
    r0, r1 = range_
    return LinearScale(float(d0), float(d1), float(r0), float(r1))


def create_time_scale(domain: Sequence[Any], range_: Sequence[float]) -> TimeScale:
    start, end = (to_timestamp(v) for v in domain)
    if start is None or end is None:
        raise ValueError(f"Time scale domain must contain dates, got {domain!r}")
    r0, r1 = range_
    return TimeScale(start, end, float(r0), float(r1))


__all__ = ["LinearScale", "TimeScale", "create_linear_scale", "create_time_scale"]
