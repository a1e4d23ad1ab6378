# msgboard/models/message.py
"""
In-memory message model.

``id``, ``text`` and ``created_at`` never change after a message is appended;
only the reaction counters do, and only through ``MessageStore``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


class ReactionKind(str, Enum):
    """Reaction counters a message carries."""

    LIKE = "like"
    DISLIKE = "dislike"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    id: int
    text: str
    created_at: datetime = field(default_factory=_utcnow)
    likes: int = 0
    dislikes: int = 0

    @property
    def timestamp(self) -> str:
        """Display timestamp in the wire format existing clients expect."""
        # Always millisecond precision, e.g. 2024-01-01T00:00:00.000Z
        utc = self.created_at.astimezone(timezone.utc)
        return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def copy(self) -> "Message":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp,
            "likes": self.likes,
            "dislikes": self.dislikes,
        }
