from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60
SHARED_CACHE_KEY = "/api/_events_cache"

Fetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]
Clock = Callable[[], float]


def to_iso(ts: float) -> str:
    return (
        datetime.fromtimestamp(ts, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def from_iso(s: str) -> float:
    return datetime.fromisoformat(s.replace("Z", "+00:00")).timestamp()


@dataclass(frozen=True)
class CacheEntry:
    events: List[Dict[str, Any]]
    fetched_at: float

    @property
    def fetched_at_iso(self) -> str:
        return to_iso(self.fetched_at)


@dataclass(frozen=True)
class CacheResult:
    events: List[Dict[str, Any]]
    fetched_at: float
    cached: bool
    stale: bool = False

    @property
    def fetched_at_iso(self) -> str:
        return to_iso(self.fetched_at)


class EventCache:
    """
    In-process cache of the last aggregation result.

    The entry is swapped by a single assignment, so concurrent readers see
    either the old or the new snapshot. There is no single-flight lock:
    overlapping refreshes each complete and the last one to finish wins.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = time.time,
    ) -> None:
        self._fetcher = fetcher
        self._ttl = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def replace(self, events: List[Dict[str, Any]]) -> CacheEntry:
        entry = CacheEntry(events=list(events), fetched_at=self._clock())
        self._entry = entry
        return entry

    async def read(self) -> CacheResult:
        entry = self._entry
        if entry is not None and (self._clock() - entry.fetched_at) < self._ttl:
            return CacheResult(entry.events, entry.fetched_at, cached=True)

        try:
            fresh = await self.refresh()
        except Exception:
            if entry is None:
                raise
            logger.exception("aggregation failed; serving stale cache from %s", entry.fetched_at_iso)
            return CacheResult(entry.events, entry.fetched_at, cached=True, stale=True)
        return CacheResult(fresh.events, fresh.fetched_at, cached=False)

    async def refresh(self) -> CacheEntry:
        events = await self._fetcher()
        return self.replace(events)

    async def prewarm(self) -> None:
        try:
            entry = await self.refresh()
            logger.info("cache pre-warmed with %d events", len(entry.events))
        except Exception:
            logger.exception("cache pre-warm failed; first request will retry")


class SnapshotStore:
    """
    Key-value store with per-entry max-age, standing in for an edge cache.
      - get(key) / set(key, value, max_age) / delete(key)
    Expired entries vanish on read.
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._store: dict[str, tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Optional[str]:
        rec = self._store.get(key)
        if not rec:
            return None
        val, exp = rec
        if exp is not None and exp <= self._clock():
            self._store.pop(key, None)
            return None
        return val

    def set(self, key: str, value: str, max_age: float | None) -> None:
        exp = (self._clock() + max_age) if max_age else None
        self._store[key] = (value, exp)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class SharedSnapshotCache:
    """
    Cache kept as one serialized snapshot under a fixed key of a shared store.
    The store enforces max-age; a miss always re-aggregates and errors propagate.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: Optional[SnapshotStore] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        key: str = SHARED_CACHE_KEY,
        clock: Clock = time.time,
    ) -> None:
        self._fetcher = fetcher
        self._clock = clock
        self._store = store or SnapshotStore(clock=clock)
        self._ttl = ttl_seconds
        self._key = key

    def _load(self) -> Optional[CacheEntry]:
        raw = self._store.get(self._key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return CacheEntry(events=data["events"], fetched_at=from_iso(data["fetchedAt"]))
        except (ValueError, KeyError, TypeError):
            logger.warning("discarding unreadable cache snapshot under %s", self._key)
            self._store.delete(self._key)
            return None

    def _save(self, events: List[Dict[str, Any]]) -> CacheEntry:
        entry = CacheEntry(events=list(events), fetched_at=self._clock())
        payload = json.dumps(
            {"events": entry.events, "fetchedAt": entry.fetched_at_iso},
            ensure_ascii=False,
        )
        self._store.set(self._key, payload, self._ttl)
        return entry

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._load()

    async def read(self) -> CacheResult:
        entry = self._load()
        if entry is not None:
            return CacheResult(entry.events, entry.fetched_at, cached=True)
        fresh = self._save(await self._fetcher())
        return CacheResult(fresh.events, fresh.fetched_at, cached=False)

    async def refresh(self) -> CacheEntry:
        self._store.delete(self._key)
        return self._save(await self._fetcher())

    async def prewarm(self) -> None:
        try:
            entry = await self.refresh()
            logger.info("cache pre-warmed with %d events", len(entry.events))
        except Exception:
            logger.exception("cache pre-warm failed; first request will retry")


def build_cache(
    fetcher: Fetcher,
    *,
    backend: str = "memory",
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
    clock: Clock = time.time,
) -> EventCache | SharedSnapshotCache:
    if backend == "shared":
        return SharedSnapshotCache(fetcher, ttl_seconds=ttl_seconds, clock=clock)
    if backend != "memory":
        logger.warning("unknown cache backend %r; using in-memory cache", backend)
    return EventCache(fetcher, ttl_seconds=ttl_seconds, clock=clock)
