"""
Prometheus metrics for the message board.

Metrics live in a dedicated registry so tests and multiple app instances do not
collide with the default process collectors.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

REGISTRY = CollectorRegistry()

messages_submitted_total = Counter(
    "msgboard_messages_submitted_total",
    "Total number of messages appended to the board",
    registry=REGISTRY,
)

reactions_applied_total = Counter(
    "msgboard_reactions_applied_total",
    "Total number of reactions applied",
    ["kind"],
    registry=REGISTRY,
)

events_delivered_total = Counter(
    "msgboard_events_delivered_total",
    "Domain events handed to subscribers",
    ["event_type", "subscriber_kind"],
    registry=REGISTRY,
)

delivery_failures_total = Counter(
    "msgboard_delivery_failures_total",
    "Deliveries that failed and removed the subscriber",
    ["subscriber_kind"],
    registry=REGISTRY,
)

long_poll_resolutions_total = Counter(
    "msgboard_long_poll_resolutions_total",
    "Long-poll requests by terminal state",
    ["outcome"],
    registry=REGISTRY,
)

active_subscribers = Gauge(
    "msgboard_active_subscribers",
    "Currently registered subscribers",
    ["subscriber_kind"],
    registry=REGISTRY,
)


def render_latest() -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
