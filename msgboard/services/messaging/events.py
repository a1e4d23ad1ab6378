# msgboard/services/messaging/events.py
"""
Board events handed to the delivery coordinator.

An event is a plain dict so it can be logged or serialized as is::

    {"type": "new_message", "v": 1, "emitted_at": "...", "payload": {<message>}}

``payload`` is always the full serialized message (see ``Message.to_dict``).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from ...models.message import Message


class EventType(str, Enum):
    """Events fanned out by the delivery coordinator."""

    NEW_MESSAGE = "new_message"
    REACTION_UPDATE = "reaction_update"


# Bump when the payload shape changes
SCHEMA_VERSION = 1


def build_event(event_type: EventType, message: Message) -> Dict[str, Any]:
    return {
        "type": event_type.value,
        "v": SCHEMA_VERSION,
        "emitted_at": datetime.now(timezone.utc).isoformat(),
        "payload": message.to_dict(),
    }


def build_new_message_event(message: Message) -> Dict[str, Any]:
    return build_event(EventType.NEW_MESSAGE, message)


def build_reaction_update_event(message: Message) -> Dict[str, Any]:
    """Event carrying a message's current like/dislike counters."""
    return build_event(EventType.REACTION_UPDATE, message)
