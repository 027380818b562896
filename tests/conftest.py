import json
from datetime import date

import pytest


def next_data_page(events, path=("props", "pageProps", "eventsData", "events")):
    tree = events
    for key in reversed(path):
        tree = {key: tree}
    return (
        "<html><head></head><body><div id='__next'></div>"
        '<script id="__NEXT_DATA__" type="application/json">'
        f"{json.dumps(tree)}"
        "</script></body></html>"
    )


def ld_page(*blocks, script_type="application/ld+json"):
    scripts = "".join(
        f'<script type="{script_type}">{b if isinstance(b, str) else json.dumps(b)}</script>'
        for b in blocks
    )
    return f"<html><head>{scripts}</head><body></body></html>"


def make_event(**kw):
    base = {
        "id": "x-1",
        "title": "City Run",
        "city": "Pune",
        "state": "",
        "start_date": "2026-11-01",
        "end_date": "2026-11-01",
        "distances": [],
        "price": None,
        "rating": None,
        "organizer": "",
        "registration_deadline": None,
        "url": "",
        "source": "test",
        "region": "India",
    }
    base.update(kw)
    return base


@pytest.fixture
def today():
    return date(2026, 1, 15)


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
