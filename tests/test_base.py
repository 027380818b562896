from providers.base import DEFAULT_TITLE, build_event


def test_build_event_collapses_whitespace():
    ev = build_event(
        id="x-1",
        title="  Pune \n  City   Run ",
        city=" Pune\t",
        organizer="Pune   Runners",
        start_date="2026-11-01",
        url="https://example.com/run",
        source="test",
    )
    assert ev["title"] == "Pune City Run"
    assert ev["city"] == "Pune"
    assert ev["organizer"] == "Pune Runners"


def test_build_event_defaults():
    ev = build_event(id="x-2", title="   ", start_date="2026-11-01", url=None, source="test")
    assert ev["title"] == DEFAULT_TITLE
    assert ev["city"] == ev["state"] == ev["organizer"] == ev["url"] == ""
    assert ev["end_date"] == "2026-11-01"
    assert ev["distances"] == []
    assert ev["registration_deadline"] is None
    assert ev["region"] == "India"
