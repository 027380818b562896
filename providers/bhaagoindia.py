from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from providers.base import build_event, fetch_pages

logger = logging.getLogger(__name__)

KEY = "bhaagoindia"
NAME = "bhaagoindia.com"

BASE = "https://bhaagoindia.com"
LISTING_URL = f"{BASE}/events/"

_slug_re = re.compile(r"/events/([a-z0-9-]+-\d+)/")

# Cloudflare Rocket Loader rewrites the script type, so match loosely.
_ld_block_re = re.compile(
    r"<script[^>]+application/ld\+json[^>]*>(.*?)</script>", re.DOTALL
)

_time_hm_re = re.compile(r",?\s*\d{1,2}:\d{2}\s*[ap]\.?m\.?", re.IGNORECASE)
_time_h_re = re.compile(r",?\s*\d{1,2}\s*[ap]\.?m\.?", re.IGNORECASE)
_sept_re = re.compile(r"\bSept\b", re.IGNORECASE)

DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y")


# ---------- listing ----------


def extract_slugs(html: str) -> List[str]:
    """Unique event slugs (``some-race-name-123``) in first-seen order."""
    seen = set()
    out: List[str] = []
    for slug in _slug_re.findall(html or ""):
        if slug not in seen:
            seen.add(slug)
            out.append(slug)
    return out


# ---------- field extraction ----------
# JSON-LD here often carries raw emoji / HTML entities that break json.loads,
# so every field is pulled out on its own.


def _extract_field(block: str, key: str) -> Optional[str]:
    rx = re.compile(r'"%s"\s*:\s*"([^"\\]*(?:\\.[^"\\]*)*)"' % re.escape(key), re.DOTALL)
    m = rx.search(block)
    if not m:
        return None
    return m.group(1).replace("\\n", " ").replace('\\"', '"').strip()


def _extract_nested(block: str, outer: str, inner: str) -> Optional[str]:
    outer_m = re.search(r'"%s"\s*:\s*\{([^}]{0,500})\}' % re.escape(outer), block, re.DOTALL)
    if not outer_m:
        return None
    inner_m = re.search(r'"%s"\s*:\s*"([^"]+)"' % re.escape(inner), outer_m.group(1))
    return inner_m.group(1) if inner_m else None


def extract_event_fields(block: str) -> Optional[Dict[str, Optional[str]]]:
    if '"Event"' not in block:
        return None
    return {
        "name": _extract_field(block, "name"),
        "startDate": _extract_field(block, "startDate"),
        "endDate": _extract_field(block, "endDate"),
        "url": _extract_field(block, "url"),
        "city": (
            _extract_nested(block, "address", "addressLocality")
            or _extract_nested(block, "location", "name")
            or _extract_field(block, "addressLocality")
        ),
        "organizer": _extract_nested(block, "organizer", "name"),
    }


def parse_indian_date(s: Optional[str]) -> Optional[str]:
    """
    "March 1, 2026, 6 a.m." / "March 1, 2026, 6:30 p.m." -> "2026-03-01".
    Returns None when the remaining text is not a recognised date.
    """
    if not s:
        return None
    clean = _time_hm_re.sub("", s, count=1)
    clean = _time_h_re.sub("", clean, count=1)
    clean = clean.replace(".", "").strip().rstrip(",").strip()
    # %b only knows "Sep"
    clean = _sept_re.sub("Sep", clean)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(clean, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


# ---------- detail pages ----------


def parse_detail(slug: str, html: str) -> Optional[Dict[str, Any]]:
    """Normalised event from the first usable Event block on a detail page."""
    for block in _ld_block_re.findall(html or ""):
        fields = extract_event_fields(block)
        if not fields or not fields.get("name"):
            continue
        start = parse_indian_date(fields.get("startDate"))
        if not start:
            continue
        end = parse_indian_date(fields.get("endDate")) if fields.get("endDate") else None
        return _normalise(slug, fields, start, end or start)
    return None


def _normalise(
    slug: str, fields: Dict[str, Optional[str]], start: str, end: str
) -> Dict[str, Any]:
    return build_event(
        id=f"bi-{slug}",
        title=fields.get("name"),
        city=fields.get("city"),
        start_date=start,
        end_date=end,
        organizer=fields.get("organizer"),
        url=fields.get("url") or f"{BASE}/events/{slug}/",
        source=NAME,
    )


# ---------- main entry ----------


def search(*, client=None) -> List[Dict[str, Any]]:
    """
    Two-phase scrape: collect slugs from the listing page, then fetch every
    detail page (bounded by DETAIL_CONCURRENCY) and read its JSON-LD.
    A listing failure raises; detail failures are skipped.
    """
    from config import settings
    from utils.http_client import default_client

    client = client or default_client()

    slugs = extract_slugs(client.get_text(LISTING_URL))
    if not slugs:
        logger.info("%s: no event slugs on listing page", NAME)
        return []

    urls = [f"{BASE}/events/{slug}/" for slug in slugs]
    pages = fetch_pages(client, urls, max_workers=settings.detail_concurrency)

    events: List[Dict[str, Any]] = []
    for slug, (_, html) in zip(slugs, pages):
        if not html:
            continue
        ev = parse_detail(slug, html)
        if ev is not None:
            events.append(ev)
    return events
