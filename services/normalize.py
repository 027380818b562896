import re

DEDUP_TITLE_LENGTH = 28

_key_strip_re = re.compile(r"[^a-z0-9]")


def title_key(title: str | None) -> str:
    return _key_strip_re.sub("", (title or "").lower())[:DEDUP_TITLE_LENGTH]


def dedup_key(e: dict) -> str:
    """Lowercased alphanumeric title prefix plus the start date."""
    return f'{title_key(e.get("title"))}-{e.get("start_date")}'


def dedupe(events: list[dict]) -> list[dict]:
    """Keep the first event seen under each dedup key, in input order."""
    seen, out = set(), []
    for e in events:
        key = dedup_key(e)
        if key in seen:
            continue
        seen.add(key)
        out.append(e)
    return out
