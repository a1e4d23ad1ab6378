# msgboard/services/messaging/__init__.py
"""
Real-time delivery for the message board.

Architecture:
- SubscriberRegistry tracks waiting long-poll requests and open push connections
- DeliveryCoordinator fans domain events out to them
- Push connections are served over WebSocket or SSE from a per-connection outbox
"""

from .delivery import DeliveryCoordinator, DeliveryReport
from .events import SCHEMA_VERSION, EventType, build_event
from .registry import (
    LongPollState,
    LongPollSubscriber,
    PushFrame,
    PushSubscriber,
    Subscriber,
    SubscriberKind,
    SubscriberRegistry,
)
from .sse_stream import create_sse_stream

__all__ = [
    # Registry
    "SubscriberRegistry",
    "Subscriber",
    "SubscriberKind",
    "LongPollSubscriber",
    "LongPollState",
    "PushSubscriber",
    "PushFrame",
    # Delivery
    "DeliveryCoordinator",
    "DeliveryReport",
    # SSE
    "create_sse_stream",
    # Events
    "EventType",
    "SCHEMA_VERSION",
    "build_event",
]
