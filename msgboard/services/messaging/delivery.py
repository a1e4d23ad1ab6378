# msgboard/services/messaging/delivery.py
"""
Fan-out of domain events to registered subscribers.

- new_message: every waiting long-poll request is answered with ``[message]``
  and removed; every push connection gets a frame and stays registered.
- reaction_update: push connections only. Long-poll clients learn current
  counters from the next snapshot they fetch.

Deliveries are independent: a subscriber that fails is logged, removed and
counted, and the remaining subscribers are still served.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict

from ...core.exceptions import SubscriberClosedException
from ...models.message import Message
from ...monitoring.prometheus_metrics import delivery_failures_total, events_delivered_total
from .events import EventType, build_new_message_event, build_reaction_update_event
from .registry import (
    LongPollState,
    PushFrame,
    PushSubscriber,
    Subscriber,
    SubscriberKind,
    SubscriberRegistry,
)

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    """Outcome of one fan-out pass."""

    event_type: EventType
    long_polls_resolved: int = 0
    pushes_sent: int = 0
    failures: int = 0


class DeliveryCoordinator:
    def __init__(self, registry: SubscriberRegistry) -> None:
        self.registry = registry

    def new_message(self, message: Message) -> DeliveryReport:
        report = DeliveryReport(EventType.NEW_MESSAGE)

        for subscriber in self.registry.drain_long_polls():
            try:
                if subscriber.resolve(LongPollState.DELIVERED, [message]):
                    report.long_polls_resolved += 1
            except Exception as e:
                report.failures += 1
                delivery_failures_total.labels(
                    subscriber_kind=SubscriberKind.LONG_POLL.value
                ).inc()
                logger.warning(
                    f"[DELIVERY] Long-poll delivery failed for subscriber {subscriber.token}: {e}",
                    exc_info=True,
                )

        if report.long_polls_resolved:
            events_delivered_total.labels(
                event_type=report.event_type.value,
                subscriber_kind=SubscriberKind.LONG_POLL.value,
            ).inc(report.long_polls_resolved)

        self._push(build_new_message_event(message), report)
        logger.debug(
            "[DELIVERY] new_message %s: %d long-poll, %d push, %d failed",
            message.id,
            report.long_polls_resolved,
            report.pushes_sent,
            report.failures,
        )
        return report

    def reaction_updated(self, message: Message) -> DeliveryReport:
        report = DeliveryReport(EventType.REACTION_UPDATE)
        self._push(build_reaction_update_event(message), report)
        logger.debug(
            "[DELIVERY] reaction_update %s: %d push, %d failed",
            message.id,
            report.pushes_sent,
            report.failures,
        )
        return report

    def _push(self, event: Dict[str, Any], report: DeliveryReport) -> None:
        frame = PushFrame.from_event(event)

        def deliver(subscriber: Subscriber) -> None:
            if not isinstance(subscriber, PushSubscriber) or subscriber.closed:
                return
            try:
                subscriber.deliver(frame)
                report.pushes_sent += 1
            except SubscriberClosedException as e:
                self._drop(subscriber, report, str(e))
            except Exception as e:
                logger.error(
                    f"[DELIVERY] Unexpected push failure for subscriber {subscriber.token}: {e}",
                    exc_info=True,
                )
                self._drop(subscriber, report, str(e))

        self.registry.for_each_active(deliver, kind=SubscriberKind.PUSH)
        if report.pushes_sent:
            events_delivered_total.labels(
                event_type=report.event_type.value,
                subscriber_kind=SubscriberKind.PUSH.value,
            ).inc(report.pushes_sent)

    def _drop(self, subscriber: PushSubscriber, report: DeliveryReport, reason: str) -> None:
        report.failures += 1
        delivery_failures_total.labels(subscriber_kind=SubscriberKind.PUSH.value).inc()
        logger.warning(
            "[DELIVERY] Dropping push subscriber",
            extra={"token": subscriber.token, "handle": subscriber.handle, "reason": reason},
        )
        self.registry.unregister(subscriber.token)
