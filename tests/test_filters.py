import pytest

from conftest import make_event
from services.filters import apply_filters, distance_matches


@pytest.mark.parametrize(
    "label,bucket,expected",
    [
        ("21K", "half", True),
        ("42K", "marathon", True),
        ("42K", "half", False),
        ("Half Marathon", "marathon", False),
        ("Ultra Marathon", "marathon", False),
        ("Marathon", "marathon", True),
        ("5K", "5k", True),
        ("5 K", "5k", True),
        ("10K", "10k", True),
        ("50 KM Trail", "ultra", True),
        ("Marathon 42.2", "marathon", True),
        ("Ultra", "ultra", True),
        ("7K", "7k", True),
        ("2K Walkathon", "walk", True),
        ("3K", "5k", False),
    ],
)
def test_distance_buckets(label, bucket, expected):
    assert distance_matches(label, bucket) is expected


def test_distance_bucket_is_case_insensitive():
    assert distance_matches("half marathon", "HALF")


def test_month_filter():
    e = make_event(start_date="2026-03-15")
    assert apply_filters([e], month="3") == [e]
    assert apply_filters([e], month=3) == [e]
    assert apply_filters([e], month="4") == []


def test_non_numeric_month_matches_nothing():
    assert apply_filters([make_event()], month="march") == []


def test_region_filter():
    india = make_event(id="a", region="India")
    elsewhere = make_event(id="b", region="Nepal")
    events = [india, elsewhere]
    assert apply_filters(events, region="india") == [india]
    assert apply_filters(events, region="global") == [elsewhere]
    assert apply_filters(events, region="all") == events
    assert apply_filters(events) == events


def test_all_and_empty_disable_filters():
    events = [make_event(id="a"), make_event(id="b", distances=["5K"])]
    assert apply_filters(events, region="all", distance="all", month="all") == events
    assert apply_filters(events, region="", distance="", month="") == events


def test_events_without_distances_fail_distance_filter():
    assert apply_filters([make_event(distances=[])], distance="5k") == []


def test_filters_compose_as_intersection():
    events = [
        make_event(id="a", start_date="2026-03-01", distances=["21K"]),
        make_event(id="b", start_date="2026-03-09", distances=["10K"]),
        make_event(id="c", start_date="2026-04-01", distances=["Half Marathon"]),
        make_event(id="d", start_date="2026-03-20", distances=["Half"], region="Nepal"),
    ]
    combined = apply_filters(events, region="india", distance="half", month="3")
    by_region = apply_filters(events, region="india")
    by_distance = apply_filters(events, distance="half")
    by_month = apply_filters(events, month="3")
    expected = [e for e in events if e in by_region and e in by_distance and e in by_month]

    assert [e["id"] for e in combined] == ["a"]
    assert combined == expected


def test_filters_are_idempotent_and_keep_order():
    events = [
        make_event(id=str(i), start_date=f"2026-05-{i:02d}", distances=["5K", "10K"])
        for i in range(1, 6)
    ]
    once = apply_filters(events, distance="10k", month="5")
    twice = apply_filters(once, distance="10k", month="5")
    assert once == twice == events
