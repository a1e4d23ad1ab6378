"""
Unit tests for MessageService (the ingest and read paths).

Coverage:
1) submit_message validation and ordering
2) submit_reaction counters and not-found handling
3) Long-poll read path: short-circuit, delivery, timeout, disconnect
4) Identifier resolution for legacy clients
"""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from msgboard.core.exceptions import NotFoundException, ValidationException
from msgboard.repositories.message_store import MessageStore
from msgboard.services.message_service import MessageService
from msgboard.services.messaging.events import EventType
from msgboard.services.messaging.registry import LongPollState, SubscriberKind


class TestSubmitMessage:
    def test_snapshot_matches_successful_submissions_in_order(self, service):
        texts = ["one", "two", "three", "four"]
        for text in texts:
            service.submit_message(text)

        assert [m.text for m in service.snapshot()] == texts
        assert [m.id for m in service.snapshot()] == [1, 2, 3, 4]

    def test_hello_example(self, service):
        service.submit_message("hello")

        snapshot = service.snapshot()
        assert [(m.id, m.text, m.likes, m.dislikes) for m in snapshot] == [(1, "hello", 0, 0)]

        service.submit_reaction(1, "like")
        assert service.snapshot()[0].likes == 1

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_text_is_rejected_without_mutation_or_delivery(self, text):
        store = MessageStore()
        coordinator = MagicMock()
        service = MessageService(store, MagicMock(), coordinator)

        with pytest.raises(ValidationException) as exc:
            service.submit_message(text)

        assert exc.value.message == "Message is required"
        assert len(store) == 0
        coordinator.new_message.assert_not_called()

    def test_too_long_text_is_rejected(self, service, store):
        with pytest.raises(ValidationException) as exc:
            service.submit_message("x" * 51)

        assert exc.value.code == "message_too_long"
        assert exc.value.details["max_length"] == 50
        assert len(store) == 0

    def test_submitted_text_is_trimmed(self, service):
        message = service.submit_message("  padded  ")

        assert message.text == "padded"


class TestSubmitReaction:
    def test_unknown_id_raises_without_delivery(self, store):
        coordinator = MagicMock()
        service = MessageService(store, MagicMock(), coordinator)
        store.append("hello")

        with pytest.raises(NotFoundException):
            service.submit_reaction(99, "like")

        assert store.get(1).likes == 0
        coordinator.reaction_updated.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_likes_both_count(self, service):
        service.submit_message("hello")

        first, second = await asyncio.gather(
            asyncio.to_thread(service.submit_reaction, 1, "like"),
            asyncio.to_thread(service.submit_reaction, 1, "like"),
        )

        assert {first.likes, second.likes} == {1, 2}
        assert service.snapshot()[0].likes == 2

    @pytest.mark.asyncio
    async def test_push_subscriber_sees_events_in_emission_order(self, service, registry):
        push = registry.register_push("socket")

        service.submit_message("a")
        service.submit_message("b")
        service.submit_reaction(1, "dislike")

        frames = [await push.next_frame(timeout=1) for _ in range(3)]
        assert [(f.event_type, f.payload["id"]) for f in frames] == [
            (EventType.NEW_MESSAGE, 1),
            (EventType.NEW_MESSAGE, 2),
            (EventType.REACTION_UPDATE, 1),
        ]
        assert frames[2].payload["dislikes"] == 1
        assert push.pending == 0

    @pytest.mark.asyncio
    async def test_unregistered_push_subscriber_stops_receiving(self, service, registry):
        push = registry.register_push("socket")
        service.submit_message("a")
        registry.unregister(push.token)

        service.submit_message("b")

        assert (await push.next_frame(timeout=1)).payload["id"] == 1
        assert await push.next_frame(timeout=1) is None


class TestWaitForMessages:
    @pytest.mark.asyncio
    async def test_non_empty_board_returns_snapshot_immediately(self, service, registry):
        service.submit_message("a")
        service.submit_message("b")

        result = await service.wait_for_messages("client")

        assert [m.text for m in result] == ["a", "b"]
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_empty_board_resolves_on_next_message(self, service, registry):
        waiter = asyncio.create_task(service.wait_for_messages("client", timeout=5))
        await asyncio.sleep(0.01)
        assert registry.count(SubscriberKind.LONG_POLL) == 1

        message = service.submit_message("hello")

        assert await asyncio.wait_for(waiter, timeout=1) == [message]
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_empty_board_times_out_with_empty_list(self, service, registry):
        loop = asyncio.get_running_loop()
        started = loop.time()

        result = await service.wait_for_messages("client", timeout=0.05)

        assert result == []
        assert loop.time() - started < 1
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_reactions_do_not_wake_long_polls(self, service, registry, store):
        waiter = asyncio.create_task(service.wait_for_messages("client", timeout=5))
        await asyncio.sleep(0.01)

        # Board is empty, so the only possible reaction target is absent
        with pytest.raises(NotFoundException):
            service.submit_reaction(1, "like")
        await asyncio.sleep(0.01)

        assert not waiter.done()
        service.submit_message("wake up")
        assert [m.text for m in await asyncio.wait_for(waiter, timeout=1)] == ["wake up"]

    @pytest.mark.asyncio
    async def test_disconnect_returns_empty_and_unregisters(self, service, registry):
        gone = asyncio.Event()
        subscribers = []

        waiter = asyncio.create_task(
            service.wait_for_messages("client", timeout=5, disconnected=gone.wait)
        )
        await asyncio.sleep(0.01)
        registry.for_each_active(subscribers.append)
        gone.set()

        assert await asyncio.wait_for(waiter, timeout=1) == []
        assert registry.count() == 0
        assert subscribers[0].state is LongPollState.DISCONNECTED

        # A later message must not be handed to the departed client
        report = service.coordinator.new_message(service.store.append("late"))
        assert report.long_polls_resolved == 0

    @pytest.mark.asyncio
    async def test_push_mode_never_waits(self, store, registry, coordinator):
        service = MessageService(store, registry, coordinator, delivery_mode="push")

        assert await service.wait_for_messages("client", timeout=5) == []
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_cleans_up(self, service, registry):
        waiter = asyncio.create_task(service.wait_for_messages("client", timeout=5))
        await asyncio.sleep(0.01)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert registry.count() == 0
        service.submit_message("after cancel")


class TestResolveMessageId:
    def test_integer_and_digit_string(self, service):
        assert service.resolve_message_id(3) == 3
        assert service.resolve_message_id(" 12 ") == 12

    def test_legacy_timestamp(self, service, store):
        service.submit_message("a")
        service.submit_message("b")
        store._messages[1].created_at = store._messages[0].created_at + timedelta(seconds=1)

        assert service.resolve_message_id(store.get(2).timestamp) == 2

    @pytest.mark.parametrize(
        "identifier", [None, True, "not-a-timestamp", "\u00b2", "9" * 5000]
    )
    def test_unresolvable_identifiers(self, service, identifier):
        service.submit_message("a")

        with pytest.raises(NotFoundException):
            service.resolve_message_id(identifier)
