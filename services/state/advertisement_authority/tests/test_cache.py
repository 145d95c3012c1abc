"""Unit tests for the expiring content-type cache."""

from __future__ import annotations

import pytest

from services.state.advertisement_authority.cache import ExpiringCache


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache: ExpiringCache[str, str] = ExpiringCache(ttl_seconds=300, clock=clock)
    cache.put("abc123", "image/png")

    clock.now += 299
    assert cache.get("abc123") == "image/png"

    clock.now += 1
    assert cache.get("abc123") is None
    assert len(cache) == 0


def test_put_refreshes_value_and_timestamp() -> None:
    clock = _Clock()
    cache: ExpiringCache[str, str] = ExpiringCache(ttl_seconds=10, clock=clock)
    cache.put("abc123", "text/plain")
    clock.now += 8
    cache.put("abc123", "text/html")
    clock.now += 8

    assert cache.get("abc123") == "text/html"


def test_put_sweeps_expired_entries_for_other_keys() -> None:
    clock = _Clock()
    cache: ExpiringCache[str, str] = ExpiringCache(ttl_seconds=60, clock=clock)
    for index in range(5):
        cache.put(f"obj{index}", "image/png")
    clock.now += 30
    cache.put("fresh", "text/plain")
    clock.now += 30

    cache.put("latest", "text/html")

    assert len(cache) == 2
    assert cache.get("fresh") == "text/plain"
    assert cache.get("obj0") is None


def test_rejects_non_positive_ttl() -> None:
    with pytest.raises(ValueError):
        ExpiringCache(ttl_seconds=0)
