"""Tests for the TTL cache."""

import asyncio

import pytest

from txguard.cache import TTLCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Counter:
    """Async fetch function that counts calls."""

    def __init__(self, values=None, error=None):
        self.calls = 0
        self.values = values
        self.error = error

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.values is not None:
            return self.values[min(self.calls, len(self.values)) - 1]
        return self.calls


async def _drain():
    for _ in range(5):
        await asyncio.sleep(0)


def test_entries_expire():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("market:aptos", "snapshot")
    assert cache.get("market:aptos") == "snapshot"

    clock.advance(10)
    assert cache.get("market:aptos") is None
    assert len(cache) == 0


def test_per_entry_ttl():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("ledger:mainnet", 1, ttl=2)
    clock.advance(3)
    assert cache.get("ledger:mainnet") is None


def test_least_recently_used_is_evicted():
    cache = TTLCache(max_entries=2, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.evictions == 1


def test_invalidate_and_clear():
    cache = TTLCache(clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_get_or_fetch_caches():
    fetch = Counter()
    cache = TTLCache(clock=FakeClock())

    assert await cache.get_or_fetch("threat:mainnet:0x1", fetch) == 1
    assert await cache.get_or_fetch("threat:mainnet:0x1", fetch) == 1
    assert fetch.calls == 1
    assert cache.stats["hits"] == 1
    assert cache.stats["misses"] == 1


@pytest.mark.asyncio
async def test_fetch_errors_are_not_cached():
    cache = TTLCache(clock=FakeClock())

    with pytest.raises(RuntimeError):
        await cache.get_or_fetch("k", Counter(error=RuntimeError("down")))
    assert cache.get("k") is None

    assert await cache.get_or_fetch("k", Counter(values=["ok"])) == "ok"


@pytest.mark.asyncio
async def test_refresh_ahead_serves_stale_and_swaps_in_fresh():
    clock = FakeClock()
    cache = TTLCache(default_ttl=100, refresh_ahead=30, clock=clock)
    fetch = Counter(values=["old", "new"])

    assert await cache.get_or_fetch("k", fetch) == "old"

    clock.advance(80)
    assert await cache.get_or_fetch("k", fetch) == "old"
    await _drain()

    assert fetch.calls == 2
    assert cache.get("k") == "new"
    assert cache.refreshes == 1
    entry = cache.get_entry("k")
    assert entry.expires_at == pytest.approx(clock.now + 100)


@pytest.mark.asyncio
async def test_failed_refresh_keeps_old_entry():
    clock = FakeClock()
    cache = TTLCache(default_ttl=100, refresh_ahead=30, clock=clock)
    cache.set("k", "old")

    clock.advance(80)
    assert await cache.get_or_fetch("k", Counter(error=RuntimeError("down"))) == "old"
    await _drain()

    assert cache.get("k") == "old"
    assert cache.refreshes == 0


@pytest.mark.asyncio
async def test_no_refresh_outside_window():
    clock = FakeClock()
    cache = TTLCache(default_ttl=100, refresh_ahead=30, clock=clock)
    fetch = Counter()
    await cache.get_or_fetch("k", fetch)

    clock.advance(10)
    await cache.get_or_fetch("k", fetch)
    await _drain()
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_aclose_cancels_pending_refresh():
    clock = FakeClock()
    cache = TTLCache(default_ttl=100, refresh_ahead=30, clock=clock)
    cache.set("k", "old")
    gate = asyncio.Event()

    async def slow_fetch():
        await gate.wait()
        return "new"

    clock.advance(80)
    await cache.get_or_fetch("k", slow_fetch)
    await cache.aclose()

    assert cache.get("k") == "old"
    assert cache.refreshes == 0
