"""
Unit tests for MessageStore.

Coverage:
1) Append validation and id allocation
2) Snapshot isolation
3) Reaction counters, including concurrent increments
4) Legacy timestamp lookup
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from msgboard.core.exceptions import NotFoundException, ValidationException
from msgboard.models.message import Message, ReactionKind


class TestAppend:
    def test_append_assigns_sequential_ids_and_trims(self, store):
        first = store.append("  hello ")
        second = store.append("world")

        assert (first.id, first.text) == (1, "hello")
        assert (second.id, second.text) == (2, "world")
        assert first.likes == 0 and first.dislikes == 0
        assert len(store) == 2

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_blank_text_is_rejected_without_mutation(self, store, text):
        with pytest.raises(ValidationException) as exc:
            store.append(text)

        assert exc.value.message == "Message is required"
        assert len(store) == 0
        assert store.snapshot() == []

    def test_created_at_is_utc_and_serialized_as_timestamp(self, store):
        message = store.append("hello")

        assert message.created_at.tzinfo is not None
        assert message.timestamp.endswith("Z")
        assert message.to_dict() == {
            "id": 1,
            "text": "hello",
            "timestamp": message.timestamp,
            "likes": 0,
            "dislikes": 0,
        }

    @pytest.mark.parametrize(
        "created_at, expected",
        [
            (datetime(2024, 1, 1, tzinfo=timezone.utc), "2024-01-01T00:00:00.000Z"),
            (
                datetime(2024, 1, 1, 12, 30, 5, 123987, tzinfo=timezone.utc),
                "2024-01-01T12:30:05.123Z",
            ),
            (
                datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2))),
                "2024-01-01T00:00:00.000Z",
            ),
        ],
    )
    def test_timestamp_always_has_millisecond_precision(self, created_at, expected):
        assert Message(id=1, text="x", created_at=created_at).timestamp == expected


class TestSnapshot:
    def test_snapshot_preserves_append_order(self, store):
        for text in ["a", "b", "c"]:
            store.append(text)

        assert [m.text for m in store.snapshot()] == ["a", "b", "c"]

    def test_snapshot_is_a_copy(self, store):
        store.append("hello")

        snapshot = store.snapshot()
        snapshot[0].likes = 99
        snapshot.clear()

        assert store.snapshot()[0].likes == 0

    def test_returned_message_does_not_alias_stored_one(self, store):
        message = store.append("hello")
        message.likes = 5

        assert store.get(1).likes == 0


class TestReactions:
    def test_like_then_dislike(self, store):
        store.append("hello")

        liked = store.apply_reaction(1, ReactionKind.LIKE)
        disliked = store.apply_reaction(1, "dislike")

        assert liked.likes == 1 and liked.dislikes == 0
        assert disliked.likes == 1 and disliked.dislikes == 1
        assert store.snapshot()[0].likes == 1

    def test_unknown_id_raises_and_leaves_counters(self, store):
        store.append("hello")

        with pytest.raises(NotFoundException):
            store.apply_reaction(42, ReactionKind.LIKE)

        message = store.get(1)
        assert (message.likes, message.dislikes) == (0, 0)

    def test_unknown_reaction_kind_is_rejected(self, store):
        store.append("hello")

        with pytest.raises(ValueError):
            store.apply_reaction(1, "love")

    def test_concurrent_likes_are_not_lost(self, store):
        store.append("popular")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: store.apply_reaction(1, ReactionKind.LIKE), range(400)))

        assert store.get(1).likes == 400

    def test_get_unknown_raises(self, store):
        with pytest.raises(NotFoundException) as exc:
            store.get(7)
        assert exc.value.details == {"id": 7}


class TestTimestampLookup:
    def test_finds_message_by_serialized_timestamp(self, store):
        store.append("first")
        store.append("second")
        store._messages[1].created_at = store._messages[0].created_at + timedelta(seconds=1)

        assert store.find_by_timestamp(store.get(2).timestamp).id == 2

    def test_duplicate_timestamps_resolve_to_earliest(self, store):
        store.append("first")
        store.append("second")
        # Force a collision between two near-simultaneous messages
        store._messages[1].created_at = store._messages[0].created_at

        assert store.find_by_timestamp(store.get(1).timestamp).id == 1

    def test_unknown_timestamp_raises(self, store):
        store.append("first")

        with pytest.raises(NotFoundException):
            store.find_by_timestamp("1999-01-01T00:00:00Z")
