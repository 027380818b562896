from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Unnamed Event"
DEFAULT_REGION = "India"
RUPEE = "₹"

_ws_re = re.compile(r"\s+")
_non_alnum_re = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def _clean(s: Optional[str]) -> Optional[str]:
    if not s:
        return None
    return _ws_re.sub(" ", str(s)).strip()


def norm_date(value: Any) -> Optional[str]:
    """Cut an ISO timestamp down to its calendar date (``2026-03-01T06:00`` -> ``2026-03-01``)."""
    if not value:
        return None
    return str(value).split("T")[0]


def iso_to_utc_date(value: Any) -> Optional[str]:
    """
    Parse an ISO-8601 timestamp (offset or 'Z' allowed), convert it to UTC
    and return the date part. Unparseable input yields None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%d")


def slugify(value: Optional[str], length: int = 40) -> str:
    """Replace every non-alphanumeric character with '-' and cut to ``length``."""
    return _non_alnum_re.sub("-", value or "")[:length]


def rupees(amount: Any) -> Optional[str]:
    if not amount:
        return None
    return f"{RUPEE}{amount}"


def _coerce_rating(v: Any) -> Optional[float]:
    if not v:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def dig(obj: Any, *path: str) -> Any:
    """Follow ``path`` through nested dicts; any missing hop returns None."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


# --------------------------
# Public builder
# --------------------------

def build_event(
    *,
    id: str,
    title: Optional[str],
    start_date: Optional[str],
    url: Optional[str],
    source: str,
    city: Optional[str] = None,
    state: Optional[str] = None,
    end_date: Optional[str] = None,
    distances: Optional[Iterable[Any]] = None,
    price: Optional[str] = None,
    rating: Any = None,
    organizer: Optional[str] = None,
    registration_deadline: Optional[str] = None,
    region: str = DEFAULT_REGION,
) -> Dict[str, Any]:
    """
    Standardizes provider outputs into the canonical event record.
    Every field has a default so partial source data never raises.
    """
    return {
        "id": id,
        "title": _clean(title) or DEFAULT_TITLE,
        "city": _clean(city) or "",
        "state": _clean(state) or "",
        "start_date": start_date or None,
        "end_date": end_date or start_date or None,
        "distances": [str(d) for d in (distances or []) if d],
        "price": price or None,
        "rating": _coerce_rating(rating),
        "organizer": _clean(organizer) or "",
        "registration_deadline": registration_deadline or None,
        "url": url or "",
        "source": source,
        "region": region or DEFAULT_REGION,
    }


# --------------------------
# Fan-out
# --------------------------

def fetch_pages(
    client: Any,
    urls: Sequence[str],
    *,
    max_workers: int,
    headers: Optional[Dict[str, str]] = None,
) -> List[Tuple[str, Optional[str]]]:
    """
    GET every url concurrently on a bounded thread pool.
    Returns ``(url, html)`` pairs in input order; a failed fetch gives ``html=None``.
    """
    if not urls:
        return []

    def _one(url: str) -> Tuple[str, Optional[str]]:
        try:
            return url, client.get_text(url, headers=headers)
        except Exception as exc:
            logger.warning("fetch failed for %s: %s: %s", url, type(exc).__name__, exc)
            return url, None

    workers = max(1, min(max_workers, len(urls)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_one, urls))
