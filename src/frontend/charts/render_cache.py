from __future__ import annotations
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from core.cache import TtlCache, fingerprint

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_MAX_ENTRIES = 10
DEFAULT_TTL_SECONDS = 300.0


class RenderCache(Generic[V]):
    """Processed-chart cache keyed by a fingerprint of data, config and registrations."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        kwargs = {"clock": clock} if clock is not None else {}
        self._cache: TtlCache[V] = TtlCache(max_entries, ttl, **kwargs)

    @staticmethod
    def make_key(data: Any, config: Any, registrations: Any = ()) -> str:
        return fingerprint(data, config, registrations)

    def get(self, key: str) -> Optional[V]:
        return self._cache.get(key)

    def set(self, key: str, value: V) -> None:
        self._cache.set(key, value)

    def invalidate(self) -> None:
        self._cache.clear()

    def sweep(self) -> int:
        removed = self._cache.sweep_expired()
        if removed:
            logger.debug("Render cache sweep removed %d expired entries", removed)
        return removed

    def keys(self) -> list[str]:
        return self._cache.keys()

    def __len__(self) -> int:
        return len(self._cache)


__all__ = ["DEFAULT_MAX_ENTRIES", "DEFAULT_TTL_SECONDS", "RenderCache"]
