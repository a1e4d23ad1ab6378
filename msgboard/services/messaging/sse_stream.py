# msgboard/services/messaging/sse_stream.py
"""
Server-Sent Events stream for a push subscriber.

The stream yields a ``connected`` event, then one event per push frame:
- new_message: carries an SSE ``id:`` field (the message id)
- reaction_update: no ``id:`` field
Idle periods longer than the heartbeat interval produce ``heartbeat`` events.
The stream ends when the subscriber is closed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
from typing import Any, AsyncGenerator, Dict

from .events import EventType
from .registry import PushFrame, PushSubscriber

logger = logging.getLogger(__name__)

SseEvent = Dict[str, str]


def _control_event(name: str, **fields: Any) -> SseEvent:
    fields["at"] = datetime.now(timezone.utc).isoformat()
    return {"event": name, "data": json.dumps(fields)}


async def create_sse_stream(
    subscriber: PushSubscriber,
    heartbeat_interval: float,
) -> AsyncGenerator[SseEvent, None]:
    """
    Stream frames queued for ``subscriber`` as SSE event dicts.

    Args:
        subscriber: A registered push subscriber
        heartbeat_interval: Seconds of silence before a heartbeat is sent
    """
    yield _control_event("connected", subscriber=subscriber.token)

    try:
        while True:
            try:
                frame = await subscriber.next_frame(timeout=heartbeat_interval)
            except asyncio.TimeoutError:
                logger.debug("[SSE-STREAM] Idle, heartbeat for subscriber %s", subscriber.token)
                yield _control_event("heartbeat", type="heartbeat")
                continue

            if frame is None:
                logger.info(f"[SSE-STREAM] Subscriber {subscriber.token} closed, ending stream")
                return
            yield format_frame(frame)
    except asyncio.CancelledError:
        logger.info(f"[SSE-STREAM] Client of subscriber {subscriber.token} went away")
        raise


def format_frame(frame: PushFrame) -> SseEvent:
    """Format a push frame for SSE output."""
    event: SseEvent = {"event": frame.event_type.value, "data": frame.to_json()}
    if frame.event_type is EventType.NEW_MESSAGE and "id" in frame.payload:
        event["id"] = str(frame.payload["id"])
    return event
