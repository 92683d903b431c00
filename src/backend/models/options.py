from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Mapping, Optional

SamplingAlgorithm = Literal[
    "uniform",
    "peaks",
    "douglasPeucker",
    "visvalingam",
    "lttb",
    "adaptive",
    "hybrid",
]
SAMPLING_ALGORITHMS: tuple[str, ...] = (
    "uniform",
    "peaks",
    "douglasPeucker",
    "visvalingam",
    "lttb",
    "adaptive",
    "hybrid",
)

DeviceTier = Literal["mobile", "tablet", "desktop", "highPerformance"]
DEVICE_POINT_LIMITS: dict[str, int] = {
    "mobile": 250,
    "tablet": 400,
    "desktop": 800,
    "highPerformance": 1200,
}

CurveType = Literal["straight", "smooth"]

DEFAULT_OFFLOAD_THRESHOLD = 5000


@dataclass(frozen=True)
class SamplingConfig:
    """Recognised sampling options; field names on the wire are camelCase."""

    algorithm: str = "hybrid"
    target_points: int = 800
    epsilon: float = 1.0  # Douglas-Peucker tolerance
    x_key: str = "x"
    y_key: str = "value"

    def __post_init__(self) -> None:
        if self.algorithm not in SAMPLING_ALGORITHMS:
            raise ValueError(f"Unknown sampling algorithm: {self.algorithm!r}")

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "SamplingConfig":
        payload = payload or {}
        epsilon = payload.get("epsilon")
        return cls(
            algorithm=str(payload.get("algorithm") or "hybrid"),
            target_points=int(payload.get("targetPoints", 800)),
            epsilon=1.0 if epsilon is None else float(epsilon),
            x_key=str(payload.get("xKey") or "x"),
            y_key=str(payload.get("yKey") or "value"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "targetPoints": self.target_points,
            "epsilon": self.epsilon,
            "xKey": self.x_key,
            "yKey": self.y_key,
        }

    def with_changes(self, **changes) -> "SamplingConfig":
        return replace(self, **changes)


@dataclass(frozen=True)
class Margin:
    top: float = 20
    right: float = 30
    bottom: float = 40
    left: float = 50


@dataclass(frozen=True)
class Dimensions:
    width: float = 400
    height: float = 300
    margin: Margin = field(default_factory=Margin)


@dataclass(frozen=True)
class ChartConfig:
    """Per-context chart configuration. Never mutated; use :meth:`merged`."""

    dimensions: Dimensions = field(default_factory=Dimensions)
    debounce_ms: int = 100
    curve: str = "straight"  # straight | smooth
    tension: float = 0.3
    # Sampling applied by the context before scaling
    target_points: int = 800
    algorithm: str = "lttb"
    x_key: Optional[str] = None  # None: first date-like field, else row index
    y_key: Optional[str] = None  # None: first numeric field
    offload_threshold: int = DEFAULT_OFFLOAD_THRESHOLD

    def merged(self, **changes) -> "ChartConfig":
        """Return a copy with ``changes`` applied.

        ``width``, ``height`` and ``margin`` update the nested dimensions.
        """
        dims = self.dimensions
        dim_changes = {k: changes.pop(k) for k in ("width", "height", "margin") if k in changes}
        if dim_changes:
            dims = replace(dims, **dim_changes)
        if "dimensions" in changes:
            dims = changes.pop("dimensions")
        return replace(self, dimensions=dims, **changes)

    def sampling_config(self, *, x_key: str = "x", y_key: str = "value") -> SamplingConfig:
        """Sampling settings for rows already reduced to ``x_key``/``y_key`` columns."""
        return SamplingConfig(
            algorithm=self.algorithm,
            target_points=self.target_points,
            x_key=x_key,
            y_key=y_key,
        )


__all__ = [
    "ChartConfig",
    "CurveType",
    "DEFAULT_OFFLOAD_THRESHOLD",
    "DEVICE_POINT_LIMITS",
    "DeviceTier",
    "Dimensions",
    "Margin",
    "SAMPLING_ALGORITHMS",
    "SamplingAlgorithm",
    "SamplingConfig",
]
