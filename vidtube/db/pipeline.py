"""
Query plans for the document store.

A plan is an ordered, immutable list of stages applied to one collection.
Stages always run in phase order: filters, then reference joins, then
denormalization (computed fields, unwinds), then projection, then sort, and
finally an optional summary that folds every document into one row of totals.
Backends (see ``vidtube.db.mongo`` and ``vidtube.db.memory``) each provide a
single executor for plans, so the plans built in ``vidtube.services.graph``
stay independent of the storage engine.
"""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from vidtube.core.errors import ValidationError


class Phase(IntEnum):
    FILTER = 0
    JOIN = 1
    DENORMALIZE = 2
    PROJECT = 3
    SORT = 4
    SUMMARIZE = 5


# ---------- Expressions ----------

@dataclass(frozen=True)
class Ref:
    """Value of another field of the same document."""
    path: str


@dataclass(frozen=True)
class Size:
    """Length of an array field; a missing field counts as empty."""
    path: str


@dataclass(frozen=True)
class First:
    """First element of an array field."""
    path: str


@dataclass(frozen=True)
class Contains:
    """True when ``value`` is an element of the array at ``path``."""
    value: Any
    path: str


Expr = Union[Ref, Size, First, Contains]


# ---------- Stages ----------

@dataclass(frozen=True)
class Match:
    filter: Dict[str, Any]
    phase = Phase.FILTER


@dataclass(frozen=True)
class TextSearch:
    query: str
    phase = Phase.FILTER


@dataclass(frozen=True)
class Lookup:
    from_: str
    local_field: str
    foreign_field: str
    as_: str
    pipeline: Optional["QueryPlan"] = None
    phase = Phase.JOIN


@dataclass(frozen=True)
class AddFields:
    fields: Tuple[Tuple[str, Any], ...]
    phase = Phase.DENORMALIZE


@dataclass(frozen=True)
class Unwind:
    path: str
    phase = Phase.DENORMALIZE


@dataclass(frozen=True)
class Project:
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    phase = Phase.PROJECT


@dataclass(frozen=True)
class Sort:
    keys: Tuple[Tuple[str, int], ...]
    phase = Phase.SORT


@dataclass(frozen=True)
class Totals:
    """Sums each expression over all documents; yields no row for empty input."""
    fields: Tuple[Tuple[str, Any], ...]
    phase = Phase.SUMMARIZE


Stage = Union[Match, TextSearch, Lookup, AddFields, Unwind, Project, Sort, Totals]


@dataclass(frozen=True)
class QueryPlan:
    collection: str
    stages: Tuple[Stage, ...] = field(default_factory=tuple)

    @property
    def sort(self) -> Optional[Sort]:
        for stage in self.stages:
            if isinstance(stage, Sort):
                return stage
        return None


def parse_direction(direction: Union[str, int, None], default: int = -1) -> int:
    if direction is None or direction == "":
        return default
    if direction in (1, -1):
        return int(direction)
    value = str(direction).strip().lower()
    if value in ("asc", "ascending", "1"):
        return 1
    if value in ("desc", "descending", "-1"):
        return -1
    raise ValidationError(f"Invalid sort direction: {direction}. Use 'asc' or 'desc'.")


class PipelineBuilder:
    def __init__(self, collection: str):
        self.collection = collection
        self._stages: List[Stage] = []

    def match(self, filter: Optional[Dict[str, Any]] = None, **fields: Any) -> "PipelineBuilder":
        criteria = dict(filter or {})
        criteria.update(fields)
        if criteria:
            self._stages.append(Match(criteria))
        return self

    def search(self, query: Optional[str]) -> "PipelineBuilder":
        if query and query.strip():
            self._stages.append(TextSearch(query.strip()))
        return self

    def lookup(
        self,
        from_: str,
        local_field: str,
        foreign_field: str = "_id",
        as_: Optional[str] = None,
        pipeline: Optional[QueryPlan] = None,
    ) -> "PipelineBuilder":
        if pipeline is not None and pipeline.collection != from_:
            raise ValueError(f"Sub-pipeline targets {pipeline.collection}, expected {from_}")
        self._stages.append(Lookup(from_, local_field, foreign_field, as_ or local_field, pipeline))
        return self

    def add_fields(self, **fields: Any) -> "PipelineBuilder":
        if fields:
            self._stages.append(AddFields(tuple(fields.items())))
        return self

    def set_field(self, name: str, expr: Any) -> "PipelineBuilder":
        # for dotted names, which cannot be keyword arguments
        self._stages.append(AddFields(((name, expr),)))
        return self

    def first(self, path: str, as_: Optional[str] = None) -> "PipelineBuilder":
        return self.set_field(as_ or path, First(path))

    def unwind(self, path: str) -> "PipelineBuilder":
        self._stages.append(Unwind(path))
        return self

    def project(self, *fields: str, exclude_id: bool = False) -> "PipelineBuilder":
        self._stages.append(Project(include=tuple(fields), exclude=("_id",) if exclude_id else ()))
        return self

    def exclude(self, *fields: str) -> "PipelineBuilder":
        self._stages.append(Project(exclude=tuple(fields)))
        return self

    def sort(self, key: str, direction: Union[str, int, None] = -1) -> "PipelineBuilder":
        order = parse_direction(direction)
        keys = [(key, order)]
        if key != "_id":
            keys.append(("_id", order))
        self._stages.append(Sort(tuple(keys)))
        return self

    def totals(self, **fields: Any) -> "PipelineBuilder":
        self._stages.append(Totals(tuple(fields.items())))
        return self

    def build(self) -> QueryPlan:
        if sum(isinstance(stage, Sort) for stage in self._stages) > 1:
            raise ValueError("A query plan accepts a single sort stage")
        ordered = sorted(self._stages, key=lambda stage: stage.phase)
        return QueryPlan(self.collection, tuple(ordered))
