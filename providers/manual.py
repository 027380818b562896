# providers/manual.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from providers.base import build_event, slugify

logger = logging.getLogger(__name__)

KEY = "manual"
NAME = "Manual (curated)"


def load_records(path: Path) -> List[Dict[str, Any]]:
    """Read the curated list; a missing or broken file gives an empty list."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        logger.warning("manual events file not found: %s", path)
        return []
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("manual events file unreadable (%s): %s", path, exc)
        return []
    if not isinstance(data, list):
        logger.warning("manual events file is not a list: %s", path)
        return []
    return [r for r in data if isinstance(r, dict)]


def _normalise(e: Dict[str, Any]) -> Dict[str, Any]:
    title = e.get("title") or ""
    start = e.get("startDate") or e.get("start_date")
    end = e.get("endDate") or e.get("end_date")
    return build_event(
        id=f"manual-{slugify(title, 40).lower()}",
        title=title,
        city=e.get("city"),
        state=e.get("state"),
        start_date=start,
        end_date=end or start,
        distances=e.get("distances"),
        price=e.get("price"),
        organizer=e.get("organizer"),
        url=e.get("url"),
        source=e.get("source") or KEY,
    )


def search(
    *,
    records: Optional[Iterable[Dict[str, Any]]] = None,
    path: Optional[Path] = None,
) -> List[Dict[str, Any]]:
    """
    Hand-curated events (BookMyShow listings and the like). No network call.
    """
    if records is None:
        if path is None:
            from config import settings

            path = settings.manual_events_path
        records = load_records(Path(path))
    return [_normalise(e) for e in records]
