from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from providers.base import build_event, dig, fetch_pages, norm_date, rupees

logger = logging.getLogger(__name__)

KEY = "indiarunning"
NAME = "indiarunning.com"

BASE = "https://www.indiarunning.com"
URLS = [
    f"{BASE}/",
    f"{BASE}/distance/5k",
    f"{BASE}/distance/10k",
    f"{BASE}/distance/half-marathon",
    f"{BASE}/distance/marathon",
    f"{BASE}/distance/ultra-marathon",
]

NEXT_DATA_ID = "__NEXT_DATA__"

# Pages disagree on where the event list lives; first path holding a list wins.
EVENT_PATHS: List[Callable[[Dict[str, Any]], Any]] = [
    lambda d: dig(d, "props", "pageProps", "eventsData", "events"),
    lambda d: dig(d, "props", "pageProps", "events"),
    lambda d: dig(d, "props", "pageProps", "data", "events"),
]


# ---------- parsing ----------


def _extract_next_data(html: str) -> Optional[Dict[str, Any]]:
    soup = BeautifulSoup(html, "html.parser")
    tag = soup.find("script", {"id": NEXT_DATA_ID, "type": "application/json"})
    if tag is None:
        return None
    txt = (tag.string or tag.get_text() or "").strip()
    if not txt:
        return None
    try:
        data = json.loads(txt)
    except json.JSONDecodeError:
        logger.info("malformed %s payload; skipping page", NEXT_DATA_ID)
        return None
    return data if isinstance(data, dict) else None


def _find_events(next_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    for path in EVENT_PATHS:
        found = path(next_data)
        if isinstance(found, list):
            return [e for e in found if isinstance(e, dict)]
    return []


def parse_page(html: str) -> List[Dict[str, Any]]:
    """Raw source-native events embedded in one page, or [] when absent."""
    next_data = _extract_next_data(html)
    if next_data is None:
        return []
    return _find_events(next_data)


# ---------- normalisation ----------


def _normalise(e: Dict[str, Any]) -> Dict[str, Any]:
    local_id = e.get("id") or e.get("slug")
    categories = e.get("categories") or []
    distances = [
        c.get("category") for c in categories if isinstance(c, dict)
    ]
    return build_event(
        id=f"ir-{local_id}",
        title=e.get("title") or e.get("name"),
        city=dig(e, "locationInfo", "city") or e.get("city"),
        state=dig(e, "locationInfo", "state") or e.get("state"),
        start_date=norm_date(dig(e, "eventDate", "start") or e.get("startDate")),
        end_date=norm_date(dig(e, "eventDate", "end") or e.get("endDate")),
        distances=distances,
        price=rupees(e.get("price")),
        rating=e.get("avgRating"),
        organizer=e.get("orgName"),
        registration_deadline=norm_date(dig(e, "regDate", "date")),
        url=f"{BASE}/events/{e.get('slug')}",
        source=NAME,
    )


# ---------- main entry ----------


def search(*, client=None) -> List[Dict[str, Any]]:
    """
    Fetch every distance-category page in parallel, pull the embedded
    Next.js payload and normalise the events, de-duplicated by id/slug.
    """
    from config import settings
    from utils.http_client import default_client

    client = client or default_client()

    seen: Dict[Any, Dict[str, Any]] = {}
    pages = fetch_pages(client, URLS, max_workers=settings.source_concurrency)
    for url, html in pages:
        if not html:
            continue
        raw = parse_page(html)
        logger.debug("%s: %d raw events", url, len(raw))
        for e in raw:
            key = e.get("id") or e.get("slug")
            if key is None or key in seen:
                continue
            seen[key] = _normalise(e)

    return list(seen.values())
