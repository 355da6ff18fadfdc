"""
Unit tests for the toggle mutator (vidtube.services.toggle_service).

Tests cover:
- Odd/even toggle counts
- At most one record per key under concurrent toggles
- Independence of keys and like kinds
"""

import asyncio

import pytest
from bson import ObjectId

from vidtube.db.indexes import LIKES, SUBSCRIPTIONS
from vidtube.models.social import Like, LikeTarget, Subscription
from vidtube.services.toggle_service import ToggleMutator


@pytest.fixture
def mutator(store):
    return ToggleMutator(store)


class TestToggleMutator:
    """Tests for existence-keyed toggling."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("calls", [1, 2, 3, 4, 7])
    async def test_record_exists_iff_odd_number_of_calls(self, mutator, store, calls):
        key = Subscription.key(ObjectId(), ObjectId())

        for _ in range(calls):
            await mutator.toggle(SUBSCRIPTIONS, key)

        assert await store.count(SUBSCRIPTIONS, key) == calls % 2
        assert await mutator.is_on(SUBSCRIPTIONS, key) is bool(calls % 2)

    @pytest.mark.asyncio
    async def test_toggle_reports_state_and_record(self, mutator):
        key = Like.key(ObjectId(), LikeTarget.VIDEO, ObjectId())

        on = await mutator.toggle(LIKES, key)
        off = await mutator.toggle(LIKES, key)

        assert on.on and on.record["likedBy"] == key["likedBy"]
        assert "createdAt" in on.record
        assert not off.on and off.record is None

    @pytest.mark.asyncio
    async def test_concurrent_toggles_never_duplicate(self, mutator, store):
        key = Like.key(ObjectId(), LikeTarget.TWEET, ObjectId())

        await asyncio.gather(*(mutator.toggle(LIKES, key) for _ in range(9)))

        assert await store.count(LIKES, key) == 1

    @pytest.mark.asyncio
    async def test_like_kinds_are_independent(self, mutator, store):
        actor, target = ObjectId(), ObjectId()

        await mutator.toggle(LIKES, Like.key(actor, LikeTarget.VIDEO, target))
        await mutator.toggle(LIKES, Like.key(actor, LikeTarget.COMMENT, target))

        assert await store.count(LIKES, {"likedBy": actor}) == 2

    @pytest.mark.asyncio
    async def test_other_actors_are_unaffected(self, mutator, store):
        channel = ObjectId()
        first, second = ObjectId(), ObjectId()

        await mutator.toggle(SUBSCRIPTIONS, Subscription.key(first, channel))
        await mutator.toggle(SUBSCRIPTIONS, Subscription.key(second, channel))
        await mutator.toggle(SUBSCRIPTIONS, Subscription.key(first, channel))

        assert await store.count(SUBSCRIPTIONS, {"channel": channel}) == 1
        assert await mutator.is_on(SUBSCRIPTIONS, Subscription.key(second, channel))
