from __future__ import annotations

import logging
import time as _t
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from routers import events as events_router
from scheduler import start_prewarm
from services.aggregator import fetch_all_events
from utils.cache import build_cache

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

_log = logging.getLogger("uvicorn.error")


def create_app(*, cache=None, prewarm: bool | None = None) -> FastAPI:
    """
    Build the API. Tests pass their own cache (with a fake fetcher/clock)
    and switch pre-warming off.
    """
    if prewarm is None:
        prewarm = settings.prewarm_on_startup

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.cache = cache or build_cache(
            fetch_all_events,
            backend=settings.cache_backend,
            ttl_seconds=settings.cache_ttl_seconds,
        )
        if prewarm:
            start_prewarm(app.state.cache)
        yield

    app = FastAPI(title="running-events-api", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = _t.perf_counter()  # monotonic for durations
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            dur_ms = int((_t.perf_counter() - start) * 1000)
            status = getattr(response, "status_code", "-")
            _log.info(
                "path=%s status=%s dur_ms=%s ua=%s",
                request.url.path,
                status,
                dur_ms,
                request.headers.get("user-agent", "-"),
            )

    app.include_router(events_router.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
