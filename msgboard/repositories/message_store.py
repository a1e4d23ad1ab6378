# msgboard/repositories/message_store.py
"""
Append-only in-memory message log.

The store is the single source of truth for messages. It lives for the
lifetime of the application and is never persisted: a restart starts from an
empty board.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import List, Union

from ..core.constants import MESSAGE_NOT_FOUND_ERROR, MESSAGE_REQUIRED_ERROR
from ..core.exceptions import NotFoundException, ValidationException
from ..models.message import Message, ReactionKind

logger = logging.getLogger(__name__)


class MessageStore:
    """
    Ordered message log with mutable reaction counters.

    All mutations happen under a lock held only for the in-memory update, so
    concurrent reactions on one message never lose an increment. Readers get
    copies and never observe a half-applied change.
    """

    def __init__(self) -> None:
        self._messages: List[Message] = []
        self._by_id: dict[int, Message] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, text: str) -> Message:
        """
        Append a new message and return a copy of it.

        Raises:
            ValidationException: If ``text`` is blank after trimming
        """
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationException(MESSAGE_REQUIRED_ERROR, code="message_required")

        with self._lock:
            message = Message(id=next(self._ids), text=cleaned)
            self._messages.append(message)
            self._by_id[message.id] = message
            return message.copy()

    def snapshot(self) -> List[Message]:
        """Return copies of all messages in append order."""
        with self._lock:
            return [message.copy() for message in self._messages]

    def get(self, message_id: int) -> Message:
        with self._lock:
            message = self._by_id.get(message_id)
            if message is None:
                raise NotFoundException(
                    MESSAGE_NOT_FOUND_ERROR,
                    code="message_not_found",
                    details={"id": message_id},
                )
            return message.copy()

    def find_by_timestamp(self, timestamp: str) -> Message:
        """
        Look a message up by its serialized creation timestamp.

        Kept for clients that still identify messages by timestamp. When two
        messages share a timestamp the earliest one wins.
        """
        with self._lock:
            for message in self._messages:
                if message.timestamp == timestamp:
                    return message.copy()
        raise NotFoundException(
            MESSAGE_NOT_FOUND_ERROR,
            code="message_not_found",
            details={"timestamp": timestamp},
        )

    def apply_reaction(self, message_id: int, kind: Union[ReactionKind, str]) -> Message:
        """
        Increment the ``kind`` counter of a message and return the updated copy.

        Raises:
            NotFoundException: If no message has ``message_id``
        """
        reaction = ReactionKind(kind)
        with self._lock:
            message = self._by_id.get(message_id)
            if message is None:
                raise NotFoundException(
                    MESSAGE_NOT_FOUND_ERROR,
                    code="message_not_found",
                    details={"id": message_id},
                )
            if reaction is ReactionKind.LIKE:
                message.likes += 1
            else:
                message.dislikes += 1
            return message.copy()
