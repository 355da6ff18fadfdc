"""
Unit tests for the in-memory document store (vidtube.db.memory).

Tests cover:
- Filter and update operators
- Unique index enforcement
- Plan execution: joins, text search, unwind, projection, sort
"""

import pytest
from bson import ObjectId

from vidtube.core.errors import DuplicateRecordError, InternalError
from vidtube.db.memory import apply_update, matches
from vidtube.db.pipeline import First, PipelineBuilder, Ref, Size


# =============================================================================
# Filter / Update Language
# =============================================================================

class TestMatches:
    """Tests for the Mongo-style filter evaluator."""

    def test_array_contains_equality(self):
        assert matches({"videos": [1, 2, 3]}, {"videos": 2})
        assert not matches({"videos": [1, 2, 3]}, {"videos": 4})

    def test_ne_on_array_means_not_an_element(self):
        assert matches({"videos": [1, 2]}, {"videos": {"$ne": 3}})
        assert not matches({"videos": [1, 2]}, {"videos": {"$ne": 2}})

    def test_exists(self):
        assert matches({"video": 1}, {"video": {"$exists": True}})
        assert matches({"comment": 1}, {"video": {"$exists": False}})

    def test_or_and_comparisons(self):
        doc = {"views": 10, "title": "b"}
        assert matches(doc, {"$or": [{"views": {"$gt": 50}}, {"title": {"$in": ["a", "b"]}}]})
        assert not matches(doc, {"$and": [{"views": {"$gte": 10}}, {"views": {"$lt": 10}}]})

    def test_unknown_operator_raises(self):
        with pytest.raises(InternalError):
            matches({"a": 1}, {"a": {"$regex": "x"}})


class TestApplyUpdate:
    """Tests for the Mongo-style update evaluator."""

    def test_push_to_front_with_slice(self):
        doc = {"watchHistory": [2, 3, 4]}
        apply_update(doc, {"$push": {"watchHistory": {"$each": [1], "$position": 0, "$slice": 3}}})
        assert doc["watchHistory"] == [1, 2, 3]

    def test_pull_and_inc(self):
        doc = {"videos": [1, 2, 1], "views": 4}
        apply_update(doc, {"$pull": {"videos": 1}, "$inc": {"views": 1}})
        assert doc == {"videos": [2], "views": 5}

    def test_unset_and_set(self):
        doc = {"refreshToken": "abc"}
        apply_update(doc, {"$unset": {"refreshToken": ""}, "$set": {"fullname": "x"}})
        assert doc == {"fullname": "x"}


# =============================================================================
# Store Operations
# =============================================================================

class TestMemoryStore:
    """Tests for CRUD behaviour and index enforcement."""

    @pytest.mark.asyncio
    async def test_unique_index_rejects_duplicates(self, store):
        await store.insert_one("users", {"username": "alice", "email": "a@x.com"})
        with pytest.raises(DuplicateRecordError) as exc:
            await store.insert_one("users", {"username": "alice", "email": "other@x.com"})
        assert exc.value.field == "username"

    @pytest.mark.asyncio
    async def test_update_cannot_introduce_duplicate(self, store):
        await store.insert_one("users", {"username": "alice", "email": "a@x.com"})
        bob = await store.insert_one("users", {"username": "bob", "email": "b@x.com"})
        with pytest.raises(DuplicateRecordError):
            await store.update_one("users", {"_id": bob["_id"]}, {"$set": {"email": "a@x.com"}})
        assert (await store.find_one("users", {"_id": bob["_id"]}))["email"] == "b@x.com"

    @pytest.mark.asyncio
    async def test_conditional_update_misses_when_filter_fails(self, store):
        doc = await store.insert_one("users", {"username": "alice", "refreshToken": "one"})
        result = await store.update_one(
            "users", {"_id": doc["_id"], "refreshToken": "stale"}, {"$set": {"refreshToken": "two"}}
        )
        assert result is None

    @pytest.mark.asyncio
    async def test_find_with_sort_and_limit(self, store):
        for views in (3, 9, 1, 5):
            await store.insert_one("videos", {"views": views, "isPublished": views != 9})

        docs = await store.find("videos", {"isPublished": True}, sort=[("views", -1)], limit=2)

        assert [d["views"] for d in docs] == [5, 3]

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store):
        doc = await store.insert_one("tweets", {"content": "hi"})
        doc["content"] = "changed"
        assert (await store.find_one("tweets", {"_id": doc["_id"]}))["content"] == "hi"


class TestPlanExecution:
    """Tests for running query plans in Python."""

    @pytest.mark.asyncio
    async def test_lookup_on_missing_collection_yields_empty_list(self, store):
        await store.insert_one("videos", {"title": "a"})
        plan = PipelineBuilder("videos").lookup("nowhere", "_id", "video", "rows").add_fields(n=Size("rows")).build()
        docs = await store.aggregate(plan)
        assert docs[0]["rows"] == [] and docs[0]["n"] == 0

    @pytest.mark.asyncio
    async def test_ref_copies_another_field(self, store):
        await store.insert_one("videos", {"title": "a", "meta": {"views": 7}})
        docs = await store.aggregate(PipelineBuilder("videos").set_field("views", Ref("meta.views")).build())
        assert docs[0]["views"] == 7

    @pytest.mark.asyncio
    async def test_first_of_empty_join_removes_field(self, store):
        await store.insert_one("videos", {"title": "a", "owner": ObjectId()})
        plan = PipelineBuilder("videos").lookup("users", "owner", "_id", "owner").set_field("owner", First("owner")).build()
        docs = await store.aggregate(plan)
        assert "owner" not in docs[0]

    @pytest.mark.asyncio
    async def test_text_search_over_indexed_fields(self, store):
        await store.insert_one("videos", {"title": "Funny cats", "description": "compilation"})
        await store.insert_one("videos", {"title": "Dogs", "description": "no felines"})
        plan = PipelineBuilder("videos").search("CATS").build()
        docs = await store.aggregate(plan)
        assert [d["title"] for d in docs] == ["Funny cats"]

    @pytest.mark.asyncio
    async def test_text_search_without_index_is_an_error(self, store):
        await store.insert_one("tweets", {"content": "cats"})
        with pytest.raises(InternalError):
            await store.aggregate(PipelineBuilder("tweets").search("cats").build())

    @pytest.mark.asyncio
    async def test_unwind_drops_empty_and_expands_arrays(self, store):
        await store.insert_one("playlists", {"name": "a", "videos": [1, 2]})
        await store.insert_one("playlists", {"name": "b", "videos": []})
        docs = await store.aggregate(PipelineBuilder("playlists").unwind("videos").build())
        assert [(d["name"], d["videos"]) for d in docs] == [("a", 1), ("a", 2)]

    @pytest.mark.asyncio
    async def test_sort_with_tiebreaker_and_projection(self, store):
        for title, views in [("a", 5), ("b", 9), ("c", 5)]:
            await store.insert_one("videos", {"title": title, "views": views, "secret": True})
        plan = PipelineBuilder("videos").project("title", "views").sort("views", "desc").build()
        docs = await store.aggregate(plan)
        assert [d["title"] for d in docs] == ["b", "c", "a"]
        assert all("secret" not in d for d in docs)

    @pytest.mark.asyncio
    async def test_totals_fold_documents_into_one_row(self, store):
        await store.insert_one("videos", {"views": 3, "tags": ["a", "b"]})
        await store.insert_one("videos", {"tags": ["c"]})
        plan = PipelineBuilder("videos").totals(count=1, views=Ref("views"), tags=Size("tags")).build()

        assert await store.aggregate(plan) == [{"_id": None, "count": 2, "views": 3, "tags": 3}]

    @pytest.mark.asyncio
    async def test_totals_over_nothing_yield_no_row(self, store):
        plan = PipelineBuilder("videos").match(views={"$gt": 100}).totals(count=1).build()
        assert await store.aggregate(plan) == []
