from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from providers.base import RUPEE, build_event, dig, iso_to_utc_date, slugify

logger = logging.getLogger(__name__)

KEY = "townscript"
NAME = "townscript.com"

# Pagination is cumulative: page=15 returns every listing (~150) in one response.
LISTING_URL = "https://www.townscript.com/in/india/running?page=15"

_event_slug_re = re.compile(r"/e/([^/?#]+)")

# Order matters: plain "marathon" must not fire for half or ultra names.
_DISTANCE_RULES = [
    ("5K", lambda n: re.search(r"\b5\s*k", n) is not None),
    ("10K", lambda n: re.search(r"\b10\s*k", n) is not None),
    ("Half Marathon", lambda n: re.search(r"half\s*marathon|21\s*k", n) is not None),
    (
        "Marathon",
        lambda n: re.search(r"marathon|42\s*k", n) is not None
        and "half" not in n
        and "ultra" not in n,
    ),
    ("Ultra", lambda n: "ultra" in n),
]


def infer_distances(name: Optional[str]) -> List[str]:
    n = (name or "").lower()
    return [label for label, rule in _DISTANCE_RULES if rule(n)]


# ---------- json-ld parsing ----------


def extract_jsonld_events(html: str) -> List[Dict[str, Any]]:
    soup = BeautifulSoup(html, "html.parser")
    items: List[Dict[str, Any]] = []
    for tag in soup.find_all("script", {"type": "application/ld+json"}):
        txt = (tag.string or tag.get_text() or "").strip()
        if not txt:
            continue
        try:
            data = json.loads(txt)
        except json.JSONDecodeError:
            logger.debug("skipping malformed JSON-LD block")
            continue

        payloads = data if isinstance(data, list) else [data]
        for obj in payloads:
            if isinstance(obj, dict) and obj.get("@type") == "Event":
                items.append(obj)
    return items


def _price(offers: Any) -> Optional[str]:
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    low = dig(offers, "lowPrice")
    if low is None:
        return None
    try:
        amount = float(low)
    except (TypeError, ValueError):
        return None
    if amount <= 0:
        return "Free"
    return f"{RUPEE}{int(amount) if amount.is_integer() else amount}"


def _normalise(e: Dict[str, Any]) -> Dict[str, Any]:
    name = e.get("name") or ""
    start = iso_to_utc_date(e.get("startDate"))
    end = iso_to_utc_date(e.get("endDate")) or start

    event_url = (e.get("url") or "").replace("townscript.com//e/", "townscript.com/e/")
    m = _event_slug_re.search(event_url)
    slug = m.group(1) if m else slugify(name, 40)

    return build_event(
        id=f"ts-{slug}",
        title=name,
        city=dig(e, "location", "address", "addressLocality") or dig(e, "location", "name"),
        start_date=start,
        end_date=end,
        distances=infer_distances(name),
        price=_price(e.get("offers")),
        organizer=dig(e, "performer", "name"),
        url=event_url,
        source=NAME,
    )


# ---------- main entry ----------


def search(*, client=None) -> List[Dict[str, Any]]:
    """
    One request for the whole listing, sent with a crawler user agent since
    structured data is only prerendered for search-engine bots.
    """
    from config import settings
    from utils.http_client import default_client

    client = client or default_client(user_agent=settings.crawler_user_agent)

    html = client.get_text(
        LISTING_URL, headers={"User-Agent": settings.crawler_user_agent}
    )
    events: List[Dict[str, Any]] = []
    for item in extract_jsonld_events(html):
        ev = _normalise(item)
        if ev["start_date"]:
            events.append(ev)
    return events
