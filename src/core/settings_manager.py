from __future__ import annotations
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QSettings

from backend.models.options import (
    DEFAULT_OFFLOAD_THRESHOLD,
    DEVICE_POINT_LIMITS,
    SAMPLING_ALGORITHMS,
    ChartConfig,
    SamplingConfig,
)


class SettingsManager:
    """User-level defaults for sampling and chart rendering, backed by ``QSettings``.

    Pass ``ini_path`` to keep the values in a standalone INI file instead of
    the platform store.
    """

    def __init__(
        self,
        organization: str = "FastLine",
        application: str = "FastLine",
        *,
        ini_path: Optional[Path] = None,
    ):
        if ini_path is not None:
            self.settings = QSettings(str(ini_path), QSettings.Format.IniFormat)
        else:
            self.settings = QSettings(organization, application)

    def sync(self) -> None:
        self.settings.sync()

    # --- Sampling -----------------------------------------------------------
    def get_device_tier(self) -> str:
        value = str(self.settings.value("sampling/device_tier", "desktop") or "desktop")
        return value if value in DEVICE_POINT_LIMITS else "desktop"

    def set_device_tier(self, tier: str) -> None:
        self.settings.setValue("sampling/device_tier", tier if tier in DEVICE_POINT_LIMITS else "desktop")

    def get_default_algorithm(self) -> str:
        value = str(self.settings.value("sampling/algorithm", "lttb") or "lttb")
        return value if value in SAMPLING_ALGORITHMS else "lttb"

    def set_default_algorithm(self, algorithm: str) -> None:
        if algorithm not in SAMPLING_ALGORITHMS:
            raise ValueError(f"Unknown sampling algorithm: {algorithm!r}")
        self.settings.setValue("sampling/algorithm", algorithm)

    def get_target_points(self) -> int:
        default = DEVICE_POINT_LIMITS[self.get_device_tier()]
        return max(1, int(self.settings.value("sampling/target_points", default, type=int)))

    def set_target_points(self, points: int) -> None:
        self.settings.setValue("sampling/target_points", max(1, int(points)))

    def get_offload_threshold(self) -> int:
        return int(self.settings.value("sampling/offload_threshold", DEFAULT_OFFLOAD_THRESHOLD, type=int))

    def set_offload_threshold(self, threshold: int) -> None:
        self.settings.setValue("sampling/offload_threshold", max(0, int(threshold)))

    def get_use_worker(self) -> bool:
        return bool(self.settings.value("sampling/use_worker", True, type=bool))

    def set_use_worker(self, enabled: bool) -> None:
        self.settings.setValue("sampling/use_worker", bool(enabled))

    # --- Caches -------------------------------------------------------------
    def get_path_cache_size(self) -> int:
        return max(1, int(self.settings.value("cache/path_cache_size", 100, type=int)))

    def set_path_cache_size(self, size: int) -> None:
        self.settings.setValue("cache/path_cache_size", max(1, int(size)))

    def get_render_cache_size(self) -> int:
        return max(1, int(self.settings.value("cache/render_cache_size", 10, type=int)))

    def set_render_cache_size(self, size: int) -> None:
        self.settings.setValue("cache/render_cache_size", max(1, int(size)))

    def get_render_cache_ttl(self) -> float:
        """Seconds before a render-cache entry expires."""
        return float(self.settings.value("cache/render_cache_ttl", 300.0, type=float))

    def set_render_cache_ttl(self, seconds: float) -> None:
        self.settings.setValue("cache/render_cache_ttl", max(0.0, float(seconds)))

    # --- Chart --------------------------------------------------------------
    def get_resize_debounce_ms(self) -> int:
        return max(0, int(self.settings.value("chart/resize_debounce_ms", 100, type=int)))

    def set_resize_debounce_ms(self, ms: int) -> None:
        self.settings.setValue("chart/resize_debounce_ms", max(0, int(ms)))

    def get_curve(self) -> str:
        value = str(self.settings.value("chart/curve", "straight") or "straight")
        return value if value in {"straight", "smooth"} else "straight"

    def set_curve(self, curve: str) -> None:
        self.settings.setValue("chart/curve", curve if curve in {"straight", "smooth"} else "straight")

    # --- Builders -----------------------------------------------------------
    def sampling_config(self, *, x_key: str = "x", y_key: str = "value") -> SamplingConfig:
        return SamplingConfig(
            algorithm=self.get_default_algorithm(),
            target_points=self.get_target_points(),
            x_key=x_key,
            y_key=y_key,
        )

    def chart_config(self, **overrides) -> ChartConfig:
        config = ChartConfig(
            debounce_ms=self.get_resize_debounce_ms(),
            curve=self.get_curve(),
            target_points=self.get_target_points(),
            algorithm=self.get_default_algorithm(),
            offload_threshold=self.get_offload_threshold(),
        )
        return config.merged(**overrides) if overrides else config


__all__ = ["SettingsManager"]
