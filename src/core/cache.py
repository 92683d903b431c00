"""Bounded in-memory caches used by the sampling and chart layers.

Both caches evict the oldest *inserted* entry first (FIFO); reads never
refresh an entry's position. All mutations happen under a lock so a cache
instance can be shared between the UI thread and the sampling worker.
"""

from __future__ import annotations
import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Iterator, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MISSING = object()


class FifoCache(Generic[K, V]):
    """Size-bounded mapping with first-in-first-out eviction."""

    def __init__(self, max_size: int = 100) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = int(max_size)
        self._entries: "OrderedDict[K, V]" = OrderedDict()
        self._lock = threading.RLock()

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            return self._entries.get(key, default)

    def set(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                return
            while len(self._entries) >= self._max_size:
                self._entries.popitem(last=False)
            self._entries[key] = value

    def delete(self, key: K) -> bool:
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[K]:
        with self._lock:
            return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    key: str
    value: V
    timestamp: float


class TtlCache(Generic[V]):
    """FIFO cache whose entries also expire ``ttl`` seconds after insertion.

    Expired entries are ignored by :meth:`get` and physically removed by
    :meth:`sweep_expired`, which the owner is expected to call periodically.
    """

    def __init__(
        self,
        max_size: int = 10,
        ttl: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = int(max_size)
        self._ttl = float(ttl)
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.RLock()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp >= self._ttl:
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(key=key, value=value, timestamp=self._clock())
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def sweep_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now - e.timestamp >= self._ttl]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "__dict__"):
        return vars(value)
    return repr(value)


def fingerprint(*parts: Any) -> str:
    """Deterministic key for arbitrary JSON-like structures.

    Mapping proxies, tuples and dataclass-like objects are normalised so two
    structurally equal inputs always produce the same digest.
    """
    payload = json.dumps(_normalise(parts), sort_keys=True, default=_json_default, separators=(",", ":"))
    return hashlib.blake2b(payload.encode("utf-8"), digest_size=16).hexdigest()


def _normalise(value: Any) -> Any:
    if isinstance(value, dict) or hasattr(value, "items") and callable(value.items):
        return {str(k): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {name: _normalise(getattr(value, name)) for name in value.__dataclass_fields__}
    return value


__all__ = ["CacheEntry", "FifoCache", "TtlCache", "fingerprint"]
