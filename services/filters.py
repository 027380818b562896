from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Union

INDIA = "India"

_ultra_km_re = re.compile(r"\b(50|60|100)\b")


def _is_set(value: Any) -> bool:
    return value not in (None, "", "all")


def distance_matches(label: Optional[str], bucket: str) -> bool:
    """Does a free-text distance label belong to a distance bucket?"""
    d = (label or "").lower()
    bucket = (bucket or "").lower()
    if bucket == "5k":
        return "5k" in d or d == "5" or "5 k" in d
    if bucket == "10k":
        return "10k" in d or d == "10" or "10 k" in d
    if bucket == "half":
        return "half" in d or "21" in d
    if bucket == "marathon":
        return ("marathon" in d and "half" not in d and "ultra" not in d) or "42" in d
    if bucket == "ultra":
        return "ultra" in d or _ultra_km_re.search(d) is not None
    return bucket in d


def _month_of(start_date: Optional[str]) -> Optional[int]:
    try:
        return int(str(start_date).split("-")[1])
    except (IndexError, ValueError):
        return None


def _region_ok(e: Dict[str, Any], region: str) -> bool:
    if region == "india":
        return e.get("region") == INDIA
    if region == "global":
        return e.get("region") != INDIA
    return True


def apply_filters(
    events: Iterable[Dict[str, Any]],
    *,
    region: Optional[str] = None,
    distance: Optional[str] = None,
    month: Union[int, str, None] = None,
) -> List[Dict[str, Any]]:
    """
    Filter events by region / distance bucket / 1-based month.
    Filters combine with AND; None, "" or "all" disables one. Order is kept.
    """
    want_month: Optional[int] = None
    if _is_set(month):
        try:
            want_month = int(month)
        except (TypeError, ValueError):
            return []

    out: List[Dict[str, Any]] = []
    for e in events:
        if _is_set(region) and not _region_ok(e, region):
            continue
        if _is_set(distance) and not any(
            distance_matches(d, distance) for d in e.get("distances") or []
        ):
            continue
        if want_month is not None and _month_of(e.get("start_date")) != want_month:
            continue
        out.append(e)
    return out
