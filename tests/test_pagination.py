"""
Unit tests for the pagination engine (vidtube.services.pagination).

Tests cover:
- Windowing and metadata over a sorted plan
- Empty result sets
- Page/limit normalization and rejection
"""

import pytest

from vidtube.core.config import PaginationSettings
from vidtube.core.errors import ValidationError
from vidtube.db.pipeline import PipelineBuilder
from vidtube.services.pagination import Page, PageParams, normalize_page_params, paginate


@pytest.fixture
def pagination_settings():
    return PaginationSettings()


async def _seed(store, count):
    for i in range(count):
        await store.insert_one("videos", {"title": f"video-{i:02d}", "views": i})


# =============================================================================
# Windowing
# =============================================================================

class TestPaginate:
    """Tests for paginate()."""

    @pytest.mark.asyncio
    async def test_second_page_of_twelve(self, store):
        await _seed(store, 12)
        plan = PipelineBuilder("videos").sort("views", "asc").build()

        page = await paginate(store, plan, PageParams(page=2, limit=5))

        assert [doc["views"] for doc in page.docs] == [5, 6, 7, 8, 9]
        assert page.total_docs == 12
        assert page.total_pages == 3
        assert page.has_prev_page and page.has_next_page
        assert (page.prev_page, page.next_page) == (1, 3)

    @pytest.mark.asyncio
    async def test_last_page_is_partial(self, store):
        await _seed(store, 12)
        plan = PipelineBuilder("videos").sort("views", "desc").build()

        page = await paginate(store, plan, PageParams(page=3, limit=5))

        assert [doc["views"] for doc in page.docs] == [1, 0]
        assert not page.has_next_page and page.next_page is None

    @pytest.mark.asyncio
    async def test_empty_result_is_a_successful_page(self, store):
        plan = PipelineBuilder("videos").sort("createdAt").build()

        page = await paginate(store, plan, PageParams(page=1, limit=10))

        assert page.docs == []
        assert page.total_docs == 0 and page.total_pages == 0
        assert not page.has_prev_page and not page.has_next_page

    @pytest.mark.asyncio
    async def test_plan_without_sort_is_rejected(self, store):
        with pytest.raises(ValueError):
            await paginate(store, PipelineBuilder("videos").build(), PageParams(page=1, limit=10))

    def test_metadata_serializes_with_camel_case(self):
        page = Page(
            docs=[],
            total_docs=0,
            limit=10,
            page=1,
            total_pages=0,
            has_prev_page=False,
            has_next_page=False,
        )
        dumped = page.model_dump(by_alias=True)
        assert {"totalDocs", "totalPages", "hasPrevPage", "hasNextPage", "prevPage", "nextPage"} <= set(dumped)


# =============================================================================
# Parameter Normalization
# =============================================================================

class TestNormalizePageParams:
    """Tests for normalize_page_params()."""

    def test_absent_values_use_defaults(self, pagination_settings):
        params = normalize_page_params(None, None, pagination_settings)
        assert (params.page, params.limit) == (1, 10)

    def test_numeric_strings_are_accepted(self, pagination_settings):
        params = normalize_page_params("3", " 20 ", pagination_settings)
        assert (params.page, params.limit, params.skip) == (3, 20, 40)

    @pytest.mark.parametrize("page,limit", [("abc", None), ("0", None), (None, "-5"), ("1.5", None)])
    def test_invalid_values_rejected(self, pagination_settings, page, limit):
        with pytest.raises(ValidationError):
            normalize_page_params(page, limit, pagination_settings)

    def test_limit_above_maximum_rejected(self, pagination_settings):
        with pytest.raises(ValidationError):
            normalize_page_params(None, "101", pagination_settings)

    def test_page_beyond_int64_skip_rejected(self, pagination_settings):
        with pytest.raises(ValidationError):
            normalize_page_params(str(10 ** 20), "10", pagination_settings)

    def test_large_page_within_range_accepted(self, pagination_settings):
        params = normalize_page_params(str(10 ** 6), "100", pagination_settings)
        assert params.skip == (10 ** 6 - 1) * 100
