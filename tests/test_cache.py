"""Tests for the bounded caches and fingerprints."""
from pathlib import Path
from types import MappingProxyType
import sys

import pytest

sys.path.insert(0, str((Path(__file__).parent.parent / "src").resolve()))

from core.cache import FifoCache, TtlCache, fingerprint
from frontend.charts.render_cache import RenderCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_fifo_cache_evicts_oldest_insert():
    cache = FifoCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1  # reads do not refresh order
    cache.set("c", 3)
    assert "a" not in cache
    assert cache.keys() == ["b", "c"]


def test_fifo_cache_overwrite_keeps_position():
    cache = FifoCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)
    assert cache.keys() == ["b", "c"]


def test_fifo_cache_rejects_zero_size():
    with pytest.raises(ValueError):
        FifoCache(0)


def test_ttl_cache_expires_and_sweeps():
    clock = FakeClock()
    cache = TtlCache(max_size=3, ttl=10, clock=clock)
    cache.set("a", "A")
    clock.now = 5
    cache.set("b", "B")
    assert cache.get("a") == "A"
    clock.now = 10
    assert cache.get("a") is None
    assert cache.get("b") == "B"
    assert cache.sweep_expired() == 1
    assert cache.keys() == ["b"]


def test_ttl_cache_bounded():
    cache = TtlCache(max_size=2, ttl=100, clock=FakeClock())
    for key in "abc":
        cache.set(key, key.upper())
    assert len(cache) == 2
    assert cache.get("a") is None


def test_fingerprint_is_structural():
    a = fingerprint([{"x": 1, "value": 2}], {"width": 10})
    b = fingerprint((MappingProxyType({"value": 2, "x": 1}),), {"width": 10})
    assert a == b
    assert a != fingerprint([{"x": 1, "value": 3}], {"width": 10})


def test_render_cache_wraps_ttl_cache():
    clock = FakeClock()
    cache = RenderCache(max_entries=2, ttl=1.0, clock=clock)
    key = RenderCache.make_key([{"v": 1}], {"w": 1})
    cache.set(key, "processed")
    assert cache.get(key) == "processed"
    clock.now = 2.0
    assert cache.get(key) is None
    assert cache.sweep() == 1
    assert len(cache) == 0
    cache.set(key, "again")
    cache.invalidate()
    assert cache.keys() == []
