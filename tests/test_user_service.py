"""
Unit tests for watch history bookkeeping (vidtube.services.user_service).

Tests cover:
- Most recent view first, without duplicates
- Concurrent views of the same video
- The history cap
"""

import asyncio

import pytest
import pytest_asyncio
from bson import ObjectId

from vidtube.db.indexes import USERS
from vidtube.db.repository import UserRepository
from vidtube.services.user_service import WATCH_HISTORY_LIMIT, UserService
from vidtube.utils.security import hash_password


@pytest.fixture
def service(store, settings):
    return UserService(store, settings.jwt)


@pytest_asyncio.fixture
async def user(store):
    users = UserRepository(store)
    return await users.create(
        users.build(
            username="alice",
            email="alice@x.com",
            fullname="Alice",
            avatar="http://media.test/alice.png",
            password=hash_password("wonderland"),
        )
    )


async def _history(store, user):
    doc = await store.find_one(USERS, {"_id": user.id})
    return doc["watchHistory"]


class TestRecordView:
    """Tests for UserService.record_view()."""

    @pytest.mark.asyncio
    async def test_rewatch_moves_video_to_front(self, store, service, user):
        first, second = ObjectId(), ObjectId()

        for video in (first, second, first):
            await service.record_view(user.id, video)

        assert await _history(store, user) == [first, second]

    @pytest.mark.asyncio
    async def test_concurrent_views_leave_one_entry(self, store, service, user):
        video = ObjectId()

        await asyncio.gather(*(service.record_view(user.id, video) for _ in range(8)))

        assert await _history(store, user) == [video]

    @pytest.mark.asyncio
    async def test_history_is_capped(self, store, service, user):
        videos = [ObjectId() for _ in range(WATCH_HISTORY_LIMIT + 5)]

        for video in videos:
            await service.record_view(user.id, video)

        history = await _history(store, user)
        assert len(history) == WATCH_HISTORY_LIMIT
        assert history[0] == videos[-1]
