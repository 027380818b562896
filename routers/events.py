from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from schemas import (
    ErrorResponse,
    EventOut,
    EventsResponse,
    RefreshResponse,
    SourcesResponse,
    SourceStatus,
)
from services.aggregator import last_outcomes, load_sources
from services.filters import apply_filters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["events"])

GENERIC_ERROR = "Failed to fetch events. Please try again."


def _error(status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=GENERIC_ERROR).model_dump(),
    )


def _validate(events: List[Dict[str, Any]]) -> List[EventOut]:
    out: List[EventOut] = []
    for idx, e in enumerate(events):
        try:
            out.append(EventOut.model_validate(e))
        except ValidationError as ve:
            logger.warning("event #%d (%s) failed validation: %s", idx, e.get("id"), ve)
    return out


# ---------- Routes ----------


@router.get(
    "/events",
    response_model=EventsResponse,
    response_model_exclude_unset=True,
    responses={500: {"model": ErrorResponse}},
)
async def get_events(
    request: Request,
    region: Optional[str] = Query(None, description="india | global | all"),
    distance: Optional[str] = Query(
        None, description="5k | 10k | half | marathon | ultra | all"
    ),
    month: Optional[str] = Query(None, description="1-12 or all"),
) -> Union[EventsResponse, JSONResponse]:
    """
    Cached, filtered event listing.

    - Serves the cached aggregation while it is younger than the TTL.
    - Re-aggregates on a miss; falls back to the stale snapshot on failure.
    - `total` counts the unfiltered list; `events` is post-filter.
    """
    cache = request.app.state.cache
    try:
        result = await cache.read()
    except Exception:
        logger.exception("GET /api/events failed with no cached data")
        return _error()

    filtered = apply_filters(
        result.events, region=region, distance=distance, month=month
    )
    payload: Dict[str, Any] = dict(
        events=_validate(filtered),
        total=len(result.events),
        fetched_at=result.fetched_at_iso,
        cached=result.cached,
    )
    if result.stale:
        payload["stale"] = True
    return EventsResponse(**payload)


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={500: {"model": ErrorResponse}},
)
async def refresh(request: Request) -> Union[RefreshResponse, JSONResponse]:
    """Force re-aggregation; no stale fallback, failure is a 500."""
    cache = request.app.state.cache
    try:
        entry = await cache.refresh()
    except Exception:
        logger.exception("POST /api/refresh failed")
        return _error()
    return RefreshResponse(success=True, count=len(entry.events))


@router.get("/sources", response_model=SourcesResponse)
def get_sources() -> SourcesResponse:
    """Configured sources with the outcome of the most recent aggregation."""
    last = last_outcomes()
    by_key = {s["key"]: s for s in last["sources"]}
    statuses = []
    for p in load_sources():
        run = by_key.get(p.key) or {}
        statuses.append(
            SourceStatus(
                key=p.key,
                name=p.name,
                ok=run.get("ok"),
                count=run.get("count", 0),
            )
        )
    return SourcesResponse(finished_at=last["finished_at"], sources=statuses)
