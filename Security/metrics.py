"""
SECURITY METRICS
================
Prometheus-backed counters for authentication and CSRF decisions.
"""

from __future__ import annotations

from typing import Dict

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

_AUTH_EVENTS = None


def _init_metrics() -> None:
    global _AUTH_EVENTS
    if _AUTH_EVENTS is not None:
        return
    _AUTH_EVENTS = Counter(
        "marketplace_auth_events_total",
        "Count of authentication, authorization and CSRF decisions",
        ["event"],
    )


def record_auth_event(event: str, amount: int = 1) -> None:
    _init_metrics()
    _AUTH_EVENTS.labels(event=event).inc(amount)


def get_auth_event_count(event: str) -> int:
    _init_metrics()
    return int(_AUTH_EVENTS.labels(event=event)._value.get())


def get_auth_metrics_snapshot(events: list[str]) -> Dict[str, int]:
    return {event: get_auth_event_count(event) for event in events}


def render_latest() -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    _init_metrics()
    return generate_latest(), CONTENT_TYPE_LATEST
