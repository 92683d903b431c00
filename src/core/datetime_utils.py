from __future__ import annotations
import re
from datetime import date, datetime

import numpy as np
import pandas as pd

# ISO, US (m/d/yyyy) and EU (d-m-yyyy) prefixes.
_DATE_PATTERNS = (
    re.compile(r"^\d{4}-\d{2}-\d{2}"),
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}"),
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}"),
)
_DATE_PREFIX = r"\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4}|\d{1,2}-\d{1,2}-\d{4}"
_EPOCH = pd.Timestamp(0)
_ONE_MS = pd.Timedelta(milliseconds=1)


def drop_timezone_preserving_wall(value):
    """Return ``value`` without any timezone information, preserving wall time."""
    if value is None or value is pd.NaT:
        return pd.NaT
    if isinstance(value, pd.Timestamp):
        if value.tzinfo is not None:
            return pd.Timestamp(value.to_pydatetime().replace(tzinfo=None))
        return value
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.replace(tzinfo=None)
        return value
    return value


def is_valid_date(value) -> bool:
    """``True`` for real date/datetime objects (NaT excluded)."""
    if value is None or value is pd.NaT:
        return False
    return isinstance(value, (datetime, date, pd.Timestamp))


def is_date_string(value) -> bool:
    """``True`` when ``value`` is a string that looks like and parses as a date."""
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not any(pattern.match(text) for pattern in _DATE_PATTERNS):
        return False
    return to_timestamp(text) is not None


def is_date_like(value) -> bool:
    return is_valid_date(value) or is_date_string(value)


def to_timestamp(value) -> pd.Timestamp | None:
    """Convert ``value`` to a timezone-naive ``pd.Timestamp`` or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None
    try:
        ts = pd.Timestamp(drop_timezone_preserving_wall(value))
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is pd.NaT or pd.isna(ts):
        return None
    return drop_timezone_preserving_wall(ts)


def to_epoch_ms(value) -> float | None:
    """Milliseconds since the epoch (wall clock, naive) for a date-like value."""
    ts = to_timestamp(value)
    if ts is None:
        return None
    return (ts - _EPOCH) / _ONE_MS


def ensure_series_naive(series: pd.Series) -> pd.Series:
    """Ensure a Series of datetimes has no timezone information."""
    values = [drop_timezone_preserving_wall(v) for v in series]
    return pd.to_datetime(pd.Series(values, index=series.index, dtype=object), errors="coerce")


def parse_dates(values) -> pd.Series:
    """Vectorised :func:`to_timestamp` over a whole column.

    Entries that are not dates or date strings (see :func:`is_date_string`)
    come back as ``NaT``. Strings are parsed in one ``pd.to_datetime`` call;
    only the ones that call cannot handle are parsed one by one.
    """
    series = pd.Series(list(values), dtype=object)
    result = pd.Series(pd.NaT, index=series.index, dtype="datetime64[ns]")
    if series.empty:
        return result

    is_text = series.map(lambda v: isinstance(v, str))
    text = series[is_text].str.strip()
    text = text[text.str.match(_DATE_PREFIX)]
    objects = series[series.map(is_valid_date)]

    for column in (text, objects):
        if column.empty:
            continue
        try:
            parsed = ensure_series_naive(column)
            if isinstance(parsed.dtype, pd.DatetimeTZDtype):
                parsed = parsed.dt.tz_localize(None)
        except (ValueError, TypeError, OverflowError):
            parsed = pd.Series(pd.NaT, index=column.index, dtype="datetime64[ns]")
        if not pd.api.types.is_datetime64_dtype(parsed.dtype):
            parsed = pd.Series(pd.NaT, index=column.index, dtype="datetime64[ns]")
        # Mixed formats in one column: the inferred format misses some rows.
        missing = parsed.isna()
        if missing.any():
            parsed = parsed.astype("datetime64[ns]")
            for index in parsed.index[missing]:
                ts = to_timestamp(column[index])
                if ts is not None:
                    parsed[index] = ts
        result.loc[parsed.index] = parsed.astype("datetime64[ns]")
    return result


def to_epoch_ms_array(values) -> np.ndarray:
    """Vectorised :func:`to_epoch_ms`; ``NaN`` where a value is not date-like."""
    dates = parse_dates(values)
    return ((dates - _EPOCH) / _ONE_MS).to_numpy(dtype=float, na_value=np.nan)


__all__ = [
    "drop_timezone_preserving_wall",
    "ensure_series_naive",
    "is_date_like",
    "is_date_string",
    "is_valid_date",
    "parse_dates",
    "to_epoch_ms",
    "to_epoch_ms_array",
    "to_timestamp",
]
