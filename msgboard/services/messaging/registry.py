# msgboard/services/messaging/registry.py
"""
Subscriber registry for long-poll requests and push connections.

Long-poll subscribers wait on a future that is resolved exactly once, by
whichever terminal event happens first:

    WAITING -> DELIVERED     (a new message arrived)
    WAITING -> TIMED_OUT     (the expiry timer fired)
    WAITING -> DISCONNECTED  (the client went away)

Later transitions are no-ops. Push subscribers stay registered until they are
unregistered and receive frames through a bounded outbox that the connection
handler drains to the socket.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import itertools
import json
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from ...core.constants import DEFAULT_LONG_POLL_TIMEOUT_SECONDS
from ...core.exceptions import SubscriberClosedException
from ...models.message import Message
from ...monitoring.prometheus_metrics import active_subscribers, long_poll_resolutions_total
from .events import EventType

logger = logging.getLogger(__name__)


class SubscriberKind(str, Enum):
    LONG_POLL = "long_poll"
    PUSH = "push"


class LongPollState(str, Enum):
    WAITING = "waiting"
    DELIVERED = "delivered"
    TIMED_OUT = "timed_out"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class PushFrame:
    """One outgoing push event."""

    event_type: EventType
    payload: Dict[str, Any]

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> "PushFrame":
        return cls(event_type=EventType(event["type"]), payload=event["payload"])

    def to_json(self) -> str:
        return json.dumps(self.payload)


class Subscriber:
    kind: SubscriberKind

    def __init__(self, token: int, handle: str) -> None:
        self.token = token
        self.handle = handle
        self.registered_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} token={self.token} handle={self.handle!r}>"


class LongPollSubscriber(Subscriber):
    kind = SubscriberKind.LONG_POLL

    def __init__(
        self,
        token: int,
        handle: str,
        timeout: float,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__(token, handle)
        self.expires_at = self.registered_at + timedelta(seconds=timeout)
        self.state = LongPollState.WAITING
        self._future: asyncio.Future[List[Message]] = loop.create_future()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._state_lock = threading.Lock()

    @property
    def resolved(self) -> bool:
        return self.state is not LongPollState.WAITING

    def resolve(self, state: LongPollState, messages: Iterable[Message]) -> bool:
        """
        Move to a terminal ``state`` and hand ``messages`` to the waiter.

        Returns False when the subscriber was already resolved.
        """
        if state is LongPollState.WAITING:
            raise ValueError("Cannot resolve a long-poll back to WAITING")
        with self._state_lock:
            if self.state is not LongPollState.WAITING:
                return False
            self.state = state
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            # The waiter may have been cancelled already (client disconnect).
            if not self._future.done():
                self._future.set_result(list(messages))
        long_poll_resolutions_total.labels(outcome=state.value).inc()
        return True

    def arm(self, timer: asyncio.TimerHandle) -> None:
        """Attach the expiry timer. A subscriber that is already resolved cancels it."""
        with self._state_lock:
            if self.state is LongPollState.WAITING:
                self._timer = timer
                return
        timer.cancel()

    async def wait(self) -> List[Message]:
        return await self._future


class PushSubscriber(Subscriber):
    kind = SubscriberKind.PUSH

    def __init__(self, token: int, handle: str, queue_size: int) -> None:
        super().__init__(token, handle)
        self.closed = False
        # None is the end-of-stream marker
        self._outbox: asyncio.Queue[Optional[PushFrame]] = asyncio.Queue(maxsize=queue_size)

    @property
    def pending(self) -> int:
        return self._outbox.qsize()

    def deliver(self, frame: PushFrame) -> None:
        """
        Queue a frame for the connection handler.

        Raises:
            SubscriberClosedException: If the connection is closed or cannot
                keep up with the outbox
        """
        if self.closed:
            raise SubscriberClosedException(f"Push subscriber {self.token} is closed")
        try:
            self._outbox.put_nowait(frame)
        except asyncio.QueueFull as exc:
            raise SubscriberClosedException(
                f"Push subscriber {self.token} outbox is full ({self._outbox.maxsize} frames)"
            ) from exc

    async def next_frame(self, timeout: Optional[float] = None) -> Optional[PushFrame]:
        """
        Wait for the next frame; None means the subscriber was closed.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first
        """
        if timeout is None:
            return await self._outbox.get()
        return await asyncio.wait_for(self._outbox.get(), timeout=timeout)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._outbox.full():
            # A stalled reader loses its backlog.
            while not self._outbox.empty():
                self._outbox.get_nowait()
        self._outbox.put_nowait(None)


class SubscriberRegistry:
    """
    Tracks every waiting long-poll request and open push connection.

    Registration order is preserved. All bookkeeping happens under a lock that
    is never held across an ``await``.
    """

    def __init__(
        self,
        long_poll_timeout: float = DEFAULT_LONG_POLL_TIMEOUT_SECONDS,
        push_queue_size: int = 256,
    ) -> None:
        self.long_poll_timeout = long_poll_timeout
        self.push_queue_size = push_queue_size
        self._subscribers: Dict[int, Subscriber] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def register_long_poll(self, handle: str, timeout: Optional[float] = None) -> LongPollSubscriber:
        """
        Register a waiting long-poll request.

        Must be called from the running event loop; the expiry timer resolves
        the subscriber with an empty result after ``timeout`` seconds.
        """
        loop = asyncio.get_running_loop()
        effective_timeout = self.long_poll_timeout if timeout is None else timeout
        with self._lock:
            subscriber = LongPollSubscriber(next(self._tokens), handle, effective_timeout, loop)
            self._subscribers[subscriber.token] = subscriber
        subscriber.arm(loop.call_later(effective_timeout, self._expire, subscriber.token))
        active_subscribers.labels(subscriber_kind=SubscriberKind.LONG_POLL.value).inc()
        logger.debug(
            "[LONG-POLL] Registered subscriber %s (%s), timeout=%ss",
            subscriber.token,
            handle,
            effective_timeout,
        )
        return subscriber

    def register_push(self, handle: str) -> PushSubscriber:
        with self._lock:
            subscriber = PushSubscriber(next(self._tokens), handle, self.push_queue_size)
            self._subscribers[subscriber.token] = subscriber
        active_subscribers.labels(subscriber_kind=SubscriberKind.PUSH.value).inc()
        logger.info(
            "[PUSH] Registered subscriber",
            extra={"token": subscriber.token, "handle": handle},
        )
        return subscriber

    def unregister(self, token: int) -> bool:
        """
        Remove a subscriber. Idempotent.

        A long-poll subscriber that is still waiting is resolved as
        disconnected; a push subscriber is closed.

        Returns:
            True if the subscriber was registered
        """
        subscriber = self._remove(token)
        if subscriber is None:
            return False
        self._terminate(subscriber, LongPollState.DISCONNECTED)
        return True

    def get(self, token: int) -> Optional[Subscriber]:
        with self._lock:
            return self._subscribers.get(token)

    def for_each_active(
        self,
        fn: Callable[[Subscriber], Any],
        kind: Optional[SubscriberKind] = None,
    ) -> int:
        """
        Call ``fn`` for every subscriber registered at call time.

        Subscribers registered while iterating are not visited. Returns the
        number of subscribers visited.
        """
        with self._lock:
            current = [s for s in self._subscribers.values() if kind is None or s.kind is kind]
        for subscriber in current:
            fn(subscriber)
        return len(current)

    def drain_long_polls(self) -> List[LongPollSubscriber]:
        """Atomically remove and return every waiting long-poll subscriber."""
        with self._lock:
            drained = [
                s for s in self._subscribers.values() if isinstance(s, LongPollSubscriber)
            ]
            for subscriber in drained:
                del self._subscribers[subscriber.token]
        if drained:
            active_subscribers.labels(subscriber_kind=SubscriberKind.LONG_POLL.value).dec(
                len(drained)
            )
        return drained

    def count(self, kind: Optional[SubscriberKind] = None) -> int:
        with self._lock:
            if kind is None:
                return len(self._subscribers)
            return sum(1 for s in self._subscribers.values() if s.kind is kind)

    def close_all(self) -> int:
        """Release every subscriber (application shutdown)."""
        with self._lock:
            tokens = list(self._subscribers)
        closed = 0
        for token in tokens:
            subscriber = self._remove(token)
            if subscriber is None:
                continue
            self._terminate(subscriber, LongPollState.TIMED_OUT)
            closed += 1
        return closed

    def _expire(self, token: int) -> None:
        subscriber = self._remove(token)
        if subscriber is None:
            return
        if isinstance(subscriber, LongPollSubscriber) and subscriber.resolve(
            LongPollState.TIMED_OUT, []
        ):
            logger.debug("[LONG-POLL] Subscriber %s timed out", token)

    def _remove(self, token: int) -> Optional[Subscriber]:
        with self._lock:
            subscriber = self._subscribers.pop(token, None)
        if subscriber is not None:
            active_subscribers.labels(subscriber_kind=subscriber.kind.value).dec()
        return subscriber

    @staticmethod
    def _terminate(subscriber: Subscriber, long_poll_state: LongPollState) -> None:
        if isinstance(subscriber, LongPollSubscriber):
            subscriber.resolve(long_poll_state, [])
        elif isinstance(subscriber, PushSubscriber):
            subscriber.close()
