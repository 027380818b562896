from __future__ import annotations

import asyncio
import importlib
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from services.normalize import dedupe

logger = logging.getLogger(__name__)

# Priority order: earlier sources win dedup ties.
SOURCE_MODULES = [
    "providers.indiarunning",
    "providers.bhaagoindia",
    "providers.townscript",
]
MANUAL_MODULE = "providers.manual"


class AggregationError(RuntimeError):
    """Every network source failed and nothing usable was produced."""


# ---------- Provider dataclass ----------


@dataclass
class Provider:
    key: str
    module: str
    fn: Callable[..., List[Dict[str, Any]]]
    name: str = ""


@dataclass
class SourceOutcome:
    key: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# bookkeeping for the diagnostics endpoint
_LAST_RUN: Dict[str, Any] = {
    "finished_at": None,
    "outcomes": [],
}

# ---------- Loader ----------


def _load_provider(mod_name: str) -> Provider:
    mod = importlib.import_module(mod_name)
    key = getattr(mod, "KEY", mod_name.rsplit(".", 1)[-1])
    return Provider(
        key=key,
        module=mod_name,
        fn=getattr(mod, "search"),
        name=getattr(mod, "NAME", key),
    )


def load_sources() -> List[Provider]:
    return [_load_provider(m) for m in SOURCE_MODULES]


def load_manual() -> Provider:
    return _load_provider(MANUAL_MODULE)


# ---------- Diagnostics ----------


def last_outcomes() -> Dict[str, Any]:
    return {
        "finished_at": _LAST_RUN["finished_at"],
        "sources": [
            {"key": o.key, "ok": o.ok, "count": len(o.items)}
            for o in _LAST_RUN["outcomes"]
        ],
    }


# ---------- Pipeline steps ----------


def _parse_day(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def drop_past(events: List[Dict[str, Any]], *, today: date) -> List[Dict[str, Any]]:
    """Keep events starting today or later; undated events are dropped."""
    out = []
    for e in events:
        day = _parse_day(e.get("start_date"))
        if day is not None and day >= today:
            out.append(e)
    return out


def sort_by_start(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # sorted() is stable, so equal dates keep their merge order
    return sorted(events, key=lambda e: str(e.get("start_date")))


def merge(
    outcomes: Sequence[SourceOutcome],
    manual: List[Dict[str, Any]],
    *,
    today: date,
) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for o in outcomes:
        items.extend(o.items)
    items.extend(manual)

    items = dedupe(items)
    items = drop_past(items, today=today)
    return sort_by_start(items)


# ---------- Core fan-out ----------


async def _call_provider(p: Provider) -> SourceOutcome:
    try:
        chunk = await asyncio.to_thread(p.fn)
    except Exception as exc:
        return SourceOutcome(key=p.key, error=f"{type(exc).__name__}: {exc}")

    items: List[Dict[str, Any]] = []
    if isinstance(chunk, list):
        for e in chunk:
            if isinstance(e, dict):
                e.setdefault("source", p.key)
                items.append(e)
    return SourceOutcome(key=p.key, items=items)


async def collect(providers: Sequence[Provider]) -> List[SourceOutcome]:
    """Run every provider concurrently and wait for all of them (all-settled)."""
    gathered = await asyncio.gather(
        *(_call_provider(p) for p in providers), return_exceptions=True
    )
    outcomes: List[SourceOutcome] = []
    for p, g in zip(providers, gathered):
        if isinstance(g, BaseException):
            outcomes.append(SourceOutcome(key=p.key, error=f"{type(g).__name__}: {g}"))
        else:
            outcomes.append(g)
    return outcomes


async def fetch_all_events(
    providers: Optional[Sequence[Provider]] = None,
    manual: Optional[Provider] = None,
    *,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Scrape every source, merge in priority order, append curated events,
    dedupe, drop past events and sort by start date.

    Raises AggregationError when all network sources failed and nothing
    upcoming is left to serve.
    """
    if providers is None:
        providers = load_sources()
    if manual is None:
        manual = load_manual()
    today = today or date.today()

    outcomes = await collect(providers)
    for o in outcomes:
        if o.ok:
            logger.info("✓ %s — %d events", o.key, len(o.items))
        else:
            logger.warning("✗ %s — %s", o.key, o.error)

    manual_items = manual.fn()
    events = merge(outcomes, manual_items, today=today)

    _LAST_RUN["finished_at"] = datetime.now(timezone.utc).isoformat()
    _LAST_RUN["outcomes"] = list(outcomes)

    if providers and not any(o.ok for o in outcomes):
        raise AggregationError("all sources failed")

    logger.info("→ total unique upcoming events: %d", len(events))
    return events
