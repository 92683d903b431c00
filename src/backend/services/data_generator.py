from __future__ import annotations
from typing import Optional

import numpy as np
import pandas as pd

DEFAULT_COLORS = ("#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6", "#06b6d4")


def generate_test_lines(
    points: int,
    lines: int = 3,
    *,
    seed: Optional[int] = None,
    start: str = "2024-01-01",
) -> list[dict]:
    """Random-walk daily series shaped like the chart input (``{"date", "value"}`` rows)."""
    rng = np.random.default_rng(seed)
    points = max(0, int(points))
    dates = pd.date_range(start=start, periods=points, freq="D").strftime("%Y-%m-%d").tolist()
    result = []
    for index in range(max(0, int(lines))):
        base = 50 + index * 25
        steps = rng.normal(0.0, 5.0, size=points)
        values = np.clip(base + np.cumsum(steps), 0, None).round().astype(int).tolist()
        result.append(
            {
                "id": f"line-{index + 1}",
                "label": f"Series {index + 1}",
                "color": DEFAULT_COLORS[index % len(DEFAULT_COLORS)],
                "data": [{"date": d, "value": v} for d, v in zip(dates, values)],
            }
        )
    return result


def generate_series(points: int, *, seed: Optional[int] = None, x_key: str = "x", y_key: str = "value") -> list[dict]:
    """Single numeric-x random walk, handy for sampling benchmarks."""
    rng = np.random.default_rng(seed)
    values = np.cumsum(rng.normal(0.0, 1.0, size=max(0, int(points))))
    return [{x_key: i, y_key: float(v)} for i, v in enumerate(values)]


__all__ = ["generate_series", "generate_test_lines"]
