# msgboard/services/message_service.py
"""
Message service: the single write path into the board.

Accepts new messages and reactions, appends them to the store and hands the
result to the delivery coordinator. Also serves the snapshot and long-poll
read paths used by GET /messages.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Awaitable, Callable, List, Optional, Union

from ..core.config import DeliveryMode
from ..core.constants import (
    MESSAGE_NOT_FOUND_ERROR,
    MESSAGE_REQUIRED_ERROR,
    MESSAGE_TOO_LONG_ERROR,
)
from ..core.exceptions import NotFoundException, ValidationException
from ..models.message import Message, ReactionKind
from ..monitoring.prometheus_metrics import messages_submitted_total, reactions_applied_total
from ..repositories.message_store import MessageStore
from .messaging.delivery import DeliveryCoordinator
from .messaging.registry import SubscriberRegistry

logger = logging.getLogger(__name__)

MessageIdentifier = Union[int, str, None]


class MessageService:
    """
    Ingest and read operations for the message board.

    Appending and fanning out happen under one lock so subscribers always see
    messages in append order. Fan-out never suspends, so the lock is never held
    across an ``await``.
    """

    def __init__(
        self,
        store: MessageStore,
        registry: SubscriberRegistry,
        coordinator: DeliveryCoordinator,
        *,
        max_message_length: int = 5000,
        delivery_mode: DeliveryMode = "long_poll",
    ) -> None:
        self.store = store
        self.registry = registry
        self.coordinator = coordinator
        self.max_message_length = max_message_length
        self.delivery_mode = delivery_mode
        self._ingest_lock = threading.Lock()

    def submit_message(self, raw_text: Optional[str]) -> Message:
        """
        Validate and publish a new message.

        Raises:
            ValidationException: If the text is blank or too long
        """
        text = (raw_text or "").strip()
        if not text:
            raise ValidationException(MESSAGE_REQUIRED_ERROR, code="message_required")
        if len(text) > self.max_message_length:
            raise ValidationException(
                MESSAGE_TOO_LONG_ERROR,
                code="message_too_long",
                details={"max_length": self.max_message_length, "length": len(text)},
            )

        with self._ingest_lock:
            message = self.store.append(text)
            report = self.coordinator.new_message(message)

        messages_submitted_total.inc()
        logger.info(
            "[INGEST] Message accepted",
            extra={
                "message_id": message.id,
                "long_polls_resolved": report.long_polls_resolved,
                "pushes_sent": report.pushes_sent,
                "delivery_failures": report.failures,
            },
        )
        return message

    def submit_reaction(self, message_id: int, kind: Union[ReactionKind, str]) -> Message:
        """
        Apply a like/dislike and push the updated counters.

        Raises:
            NotFoundException: If the message does not exist
        """
        reaction = ReactionKind(kind)
        with self._ingest_lock:
            message = self.store.apply_reaction(message_id, reaction)
            report = self.coordinator.reaction_updated(message)

        reactions_applied_total.labels(kind=reaction.value).inc()
        logger.info(
            "[INGEST] Reaction applied",
            extra={
                "message_id": message.id,
                "kind": reaction.value,
                "pushes_sent": report.pushes_sent,
                "delivery_failures": report.failures,
            },
        )
        return message

    def resolve_message_id(self, identifier: MessageIdentifier) -> int:
        """
        Map a client-supplied identifier to a message id.

        Integers and digit strings are ids. Any other string is treated as a
        creation timestamp, the identifier older clients send.

        Raises:
            NotFoundException: If nothing matches
        """
        if isinstance(identifier, bool) or identifier is None:
            raise NotFoundException(MESSAGE_NOT_FOUND_ERROR, code="message_not_found")
        if isinstance(identifier, int):
            return identifier
        cleaned = identifier.strip()
        if cleaned.isdecimal():
            try:
                return int(cleaned)
            except ValueError as exc:
                # Decimal digits int() still refuses, e.g. past the digit limit
                raise NotFoundException(
                    MESSAGE_NOT_FOUND_ERROR, code="message_not_found"
                ) from exc
        return self.store.find_by_timestamp(cleaned).id

    def snapshot(self) -> List[Message]:
        return self.store.snapshot()

    async def wait_for_messages(
        self,
        handle: str,
        timeout: Optional[float] = None,
        disconnected: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> List[Message]:
        """
        Long-poll read path for GET /messages.

        A non-empty board (or push delivery mode) answers immediately with the
        full snapshot. Otherwise the caller waits for the next new message, an
        empty result on timeout, or an empty result if ``disconnected``
        completes first.
        """
        snapshot = self.store.snapshot()
        if snapshot or self.delivery_mode == "push":
            return snapshot

        subscriber = self.registry.register_long_poll(handle, timeout)
        waiter = asyncio.ensure_future(subscriber.wait())
        watcher = asyncio.ensure_future(disconnected()) if disconnected is not None else None
        try:
            pending = {waiter} if watcher is None else {waiter, watcher}
            done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            if waiter in done:
                return waiter.result()
            logger.debug(f"[LONG-POLL] Client {handle} disconnected while waiting")
            return []
        finally:
            for task in (waiter, watcher):
                if task is not None and not task.done():
                    task.cancel()
            self.registry.unregister(subscriber.token)
