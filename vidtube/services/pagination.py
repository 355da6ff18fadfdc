"""
Page/limit windowing over query plans.

Absent ``page``/``limit`` fall back to the configured defaults. Anything else
that is not a positive integer (or a limit above the configured maximum) is
rejected with a ValidationError rather than silently coerced. An empty page
is a normal, successful result.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vidtube.core.config import PaginationSettings
from vidtube.core.errors import ValidationError
from vidtube.db.pipeline import QueryPlan
from vidtube.db.store import DocumentStore

# skip is encoded as a signed 64-bit integer by the store
MAX_SKIP = 2 ** 63 - 1


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel):
    docs: List[Dict[str, Any]]
    total_docs: int = Field(..., alias="totalDocs")
    limit: int
    page: int
    total_pages: int = Field(..., alias="totalPages")
    has_prev_page: bool = Field(..., alias="hasPrevPage")
    has_next_page: bool = Field(..., alias="hasNextPage")
    prev_page: Optional[int] = Field(default=None, alias="prevPage")
    next_page: Optional[int] = Field(default=None, alias="nextPage")

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


def _positive_int(name: str, raw: Optional[Any], default: int) -> int:
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"'{name}' must be a positive integer.")
    if value < 1:
        raise ValidationError(f"'{name}' must be a positive integer.")
    return value


def normalize_page_params(page: Optional[Any], limit: Optional[Any], settings: PaginationSettings) -> PageParams:
    params = PageParams(
        page=_positive_int("page", page, settings.default_page),
        limit=_positive_int("limit", limit, settings.default_limit),
    )
    if params.limit > settings.max_limit:
        raise ValidationError(f"'limit' must not exceed {settings.max_limit}.")
    if params.skip > MAX_SKIP:
        raise ValidationError("'page' is out of range.")
    return params


async def paginate(store: DocumentStore, plan: QueryPlan, params: PageParams) -> Page:
    if plan.sort is None:
        raise ValueError(f"Paginated plan on {plan.collection} has no sort stage")

    docs, total = await store.aggregate_page(plan, params.skip, params.limit)
    total_pages = math.ceil(total / params.limit) if total else 0
    has_prev = params.page > 1
    has_next = params.page < total_pages
    return Page(
        docs=docs,
        total_docs=total,
        limit=params.limit,
        page=params.page,
        total_pages=total_pages,
        has_prev_page=has_prev,
        has_next_page=has_next,
        prev_page=params.page - 1 if has_prev else None,
        next_page=params.page + 1 if has_next else None,
    )
