"""
Unit tests for the MongoDB backend (vidtube.db.mongo) against mocked collections.

Tests cover:
- Toggle races on the unique index and exhausted retries
- $facet page unpacking, including empty results
- Translation of driver errors to API errors
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, DuplicateKeyError, ExecutionTimeout, OperationFailure

from vidtube.core.errors import DuplicateRecordError, InternalError, ServiceUnavailableError
from vidtube.db.mongo import TOGGLE_ATTEMPTS, MongoStore
from vidtube.db.pipeline import PipelineBuilder


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def collection():
    """Mock async collection returned for every collection name."""
    return MagicMock()


@pytest.fixture
def mongo(collection):
    """MongoStore wired to a mock client."""
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value = collection
    return MongoStore("mongodb://unused", "vidtube", client=client)


def _cursor(rows):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=rows)
    return cursor


def _duplicate(field="username"):
    return DuplicateKeyError("E11000 duplicate key", 11000, {"keyPattern": {field: 1}})


# =============================================================================
# Toggle
# =============================================================================

class TestToggle:
    """Tests for MongoStore.toggle()."""

    @pytest.mark.asyncio
    async def test_existing_record_is_deleted(self, mongo, collection):
        key = {"likedBy": ObjectId(), "video": ObjectId()}
        collection.find_one_and_delete = AsyncMock(return_value={"_id": ObjectId(), **key})
        collection.insert_one = AsyncMock()

        assert await mongo.toggle("likes", key) == (False, None)
        collection.insert_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_record_is_inserted(self, mongo, collection):
        key = {"likedBy": ObjectId(), "video": ObjectId()}
        inserted = ObjectId()
        collection.find_one_and_delete = AsyncMock(return_value=None)
        collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=inserted))

        is_on, doc = await mongo.toggle("likes", key, extra={"createdAt": "now"})

        assert is_on is True
        assert doc == {"_id": inserted, "createdAt": "now", **key}

    @pytest.mark.asyncio
    async def test_lost_insert_race_retries_and_deletes(self, mongo, collection):
        key = {"subscriber": ObjectId(), "channel": ObjectId()}
        # nothing to delete, a concurrent caller inserts first, then our retry removes it
        collection.find_one_and_delete = AsyncMock(side_effect=[None, {"_id": ObjectId(), **key}])
        collection.insert_one = AsyncMock(side_effect=_duplicate("subscriber,channel"))

        assert await mongo.toggle("subscriptions", key) == (False, None)
        assert collection.find_one_and_delete.await_count == 2
        assert collection.insert_one.await_count == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_are_retryable(self, mongo, collection):
        collection.find_one_and_delete = AsyncMock(return_value=None)
        collection.insert_one = AsyncMock(side_effect=_duplicate())

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await mongo.toggle("likes", {"likedBy": ObjectId()})

        assert exc_info.value.retryable is True
        assert collection.insert_one.await_count == TOGGLE_ATTEMPTS


# =============================================================================
# Paged Aggregation
# =============================================================================

class TestAggregatePage:
    """Tests for MongoStore.aggregate_page()."""

    @pytest.mark.asyncio
    async def test_facet_is_unpacked(self, mongo, collection):
        docs = [{"_id": ObjectId(), "title": "a"}]
        collection.aggregate = AsyncMock(return_value=_cursor([{"docs": docs, "total": [{"count": 7}]}]))
        plan = PipelineBuilder("videos").match(isPublished=True).sort("createdAt").build()

        assert await mongo.aggregate_page(plan, skip=5, limit=1) == (docs, 7)

        pipeline = collection.aggregate.await_args.args[0]
        assert pipeline[-1] == {
            "$facet": {
                "docs": [{"$skip": 5}, {"$limit": 1}],
                "total": [{"$count": "count"}],
            }
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rows", [[], [{"docs": [], "total": []}]])
    async def test_empty_result_is_an_empty_page(self, mongo, collection, rows):
        collection.aggregate = AsyncMock(return_value=_cursor(rows))
        plan = PipelineBuilder("videos").sort("createdAt").build()

        assert await mongo.aggregate_page(plan, skip=0, limit=10) == ([], 0)


# =============================================================================
# Error Translation
# =============================================================================

class TestErrorTranslation:
    """Tests for driver errors surfacing as API errors."""

    @pytest.mark.asyncio
    async def test_timeout_is_service_unavailable(self, mongo, collection):
        collection.find_one = AsyncMock(side_effect=ExecutionTimeout("operation exceeded time limit", 50))

        with pytest.raises(ServiceUnavailableError):
            await mongo.find_one("users", {"username": "alice"})

    @pytest.mark.asyncio
    async def test_connection_failure_is_service_unavailable(self, mongo, collection):
        collection.count_documents = AsyncMock(side_effect=AutoReconnect("connection reset"))

        with pytest.raises(ServiceUnavailableError):
            await mongo.count("videos", {})

    @pytest.mark.asyncio
    async def test_other_driver_errors_are_internal(self, mongo, collection):
        collection.find_one_and_delete = AsyncMock(side_effect=OperationFailure("bad query", 2))

        with pytest.raises(InternalError):
            await mongo.delete_one("videos", {"$bad": 1})

    @pytest.mark.asyncio
    async def test_duplicate_key_names_the_field(self, mongo, collection):
        collection.insert_one = AsyncMock(side_effect=_duplicate("email"))

        with pytest.raises(DuplicateRecordError) as exc_info:
            await mongo.insert_one("users", {"email": "alice@x.com"})

        assert exc_info.value.field == "email"
