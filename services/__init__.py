"""
Service package marker.

Intentionally empty to avoid heavy imports at package import time.
Import the concrete modules directly, e.g.:

    from services.aggregator import fetch_all_events
    from services.filters import apply_filters
    from services.normalize import dedupe
"""
__all__: list[str] = []
