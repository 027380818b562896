from __future__ import annotations

import asyncio
import logging
import threading

logger = logging.getLogger(__name__)


def _prewarm(cache) -> None:
    """Fill the cache once at startup; never raises."""
    try:
        asyncio.run(cache.prewarm())
    except Exception:
        logger.exception("pre-warm thread crashed")


def start_prewarm(cache) -> threading.Thread:
    """
    Run one aggregation in the background so the server starts accepting
    requests immediately. A request arriving first simply aggregates itself.
    """
    t = threading.Thread(target=_prewarm, args=(cache,), name="cache-prewarm", daemon=True)
    t.start()
    return t
