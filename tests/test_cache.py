import asyncio
import json

import pytest

from conftest import make_event
from utils.cache import (
    DEFAULT_TTL_SECONDS,
    SHARED_CACHE_KEY,
    EventCache,
    SharedSnapshotCache,
    SnapshotStore,
    build_cache,
)


class FakeFetcher:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


FIRST = [make_event(id="a")]
SECOND = [make_event(id="a"), make_event(id="b", title="Other Run")]


def test_fresh_entry_is_served_without_aggregating(clock):
    fetch = FakeFetcher(FIRST)
    cache = EventCache(fetch, clock=clock)

    miss = asyncio.run(cache.read())
    assert miss.cached is False and miss.stale is False
    assert miss.fetched_at == clock.now

    clock.advance(DEFAULT_TTL_SECONDS - 1)
    hit = asyncio.run(cache.read())
    assert hit.cached is True
    assert hit.events == FIRST
    assert fetch.calls == 1


def test_expired_entry_triggers_reaggregation(clock):
    fetch = FakeFetcher(FIRST, SECOND)
    cache = EventCache(fetch, clock=clock)
    asyncio.run(cache.read())

    clock.advance(DEFAULT_TTL_SECONDS)
    result = asyncio.run(cache.read())

    assert fetch.calls == 2
    assert result.cached is False
    assert result.events == SECOND
    assert cache.entry.fetched_at == clock.now


def test_failed_reaggregation_serves_stale_snapshot(clock):
    fetch = FakeFetcher(FIRST, RuntimeError("all sources down"))
    cache = EventCache(fetch, clock=clock)
    first = asyncio.run(cache.read())

    clock.advance(DEFAULT_TTL_SECONDS + 60)
    result = asyncio.run(cache.read())

    assert result.cached is True
    assert result.stale is True
    assert result.events == first.events
    assert result.fetched_at == first.fetched_at


def test_failure_without_prior_entry_propagates(clock):
    cache = EventCache(FakeFetcher(RuntimeError("down")), clock=clock)
    with pytest.raises(RuntimeError):
        asyncio.run(cache.read())
    assert cache.entry is None


def test_refresh_ignores_ttl_and_surfaces_errors(clock):
    fetch = FakeFetcher(FIRST, SECOND, RuntimeError("down"))
    cache = EventCache(fetch, clock=clock)
    asyncio.run(cache.read())

    clock.advance(5)
    entry = asyncio.run(cache.refresh())
    assert entry.events == SECOND
    assert fetch.calls == 2

    with pytest.raises(RuntimeError):
        asyncio.run(cache.refresh())
    assert cache.entry.events == SECOND


def test_prewarm_is_best_effort(clock):
    cache = EventCache(FakeFetcher(RuntimeError("down")), clock=clock)
    asyncio.run(cache.prewarm())
    assert cache.entry is None

    cache = EventCache(FakeFetcher(FIRST), clock=clock)
    asyncio.run(cache.prewarm())
    assert cache.entry.events == FIRST


def test_fetched_at_iso_format(clock):
    cache = EventCache(FakeFetcher(FIRST), clock=lambda: 1_772_323_200.0)
    entry = asyncio.run(cache.refresh())
    assert entry.fetched_at_iso == "2026-03-01T00:00:00.000Z"


def test_snapshot_store_expires_entries(clock):
    store = SnapshotStore(clock=clock)
    store.set("k", "v", 10)
    assert store.get("k") == "v"
    clock.advance(10)
    assert store.get("k") is None


def test_shared_cache_serializes_snapshot(clock):
    store = SnapshotStore(clock=clock)
    fetch = FakeFetcher(FIRST)
    cache = SharedSnapshotCache(fetch, store=store, clock=clock)

    miss = asyncio.run(cache.read())
    assert miss.cached is False

    raw = json.loads(store.get(SHARED_CACHE_KEY))
    assert raw["events"] == FIRST
    assert raw["fetchedAt"] == miss.fetched_at_iso

    hit = asyncio.run(cache.read())
    assert hit.cached is True and hit.events == FIRST
    assert fetch.calls == 1


def test_shared_cache_expiry_is_left_to_the_store(clock):
    fetch = FakeFetcher(FIRST, SECOND)
    cache = SharedSnapshotCache(fetch, clock=clock, ttl_seconds=100)
    asyncio.run(cache.read())

    clock.advance(100)
    result = asyncio.run(cache.read())
    assert result.cached is False
    assert result.events == SECOND


def test_shared_cache_has_no_stale_fallback(clock):
    fetch = FakeFetcher(FIRST, RuntimeError("down"))
    cache = SharedSnapshotCache(fetch, clock=clock, ttl_seconds=100)
    asyncio.run(cache.read())

    clock.advance(101)
    with pytest.raises(RuntimeError):
        asyncio.run(cache.read())


def test_shared_cache_refresh_replaces_snapshot(clock):
    fetch = FakeFetcher(FIRST, SECOND)
    cache = SharedSnapshotCache(fetch, clock=clock)
    asyncio.run(cache.read())
    entry = asyncio.run(cache.refresh())
    assert entry.events == SECOND
    assert cache.entry.events == SECOND


def test_build_cache_selects_backend(clock):
    fetch = FakeFetcher(FIRST)
    assert isinstance(build_cache(fetch, backend="memory"), EventCache)
    assert isinstance(build_cache(fetch, backend="shared"), SharedSnapshotCache)
    assert isinstance(build_cache(fetch, backend="redis"), EventCache)
