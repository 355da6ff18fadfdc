import asyncio
import copy
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from loguru import logger

from vidtube.core.errors import DuplicateRecordError, InternalError
from vidtube.db.pipeline import (
    AddFields,
    Contains,
    First,
    Lookup,
    Match,
    Project,
    QueryPlan,
    Ref,
    Size,
    Sort,
    Stage,
    TextSearch,
    Totals,
    Unwind,
)
from vidtube.db.store import Document, DocumentStore, IndexSpec


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

_WORD = re.compile(r"\w+", re.UNICODE)


def get_path(doc: Any, path: str) -> Any:
    current = doc
    for i, part in enumerate(path.split(".")):
        if isinstance(current, list):
            rest = ".".join(path.split(".")[i:])
            values = []
            for item in current:
                value = get_path(item, rest)
                if value is MISSING:
                    continue
                if isinstance(value, list):
                    values.extend(value)
                else:
                    values.append(value)
            return values
        if not isinstance(current, dict) or part not in current:
            return MISSING
        current = current[part]
    return current


def set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def unset_path(doc: Dict[str, Any], path: str) -> None:
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        current = current.get(part)
        if not isinstance(current, dict):
            return
    current.pop(parts[-1], None)


def _equals(value: Any, expected: Any) -> bool:
    if value is MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return any(item == expected for item in value)
    return value == expected


def _compare(value: Any, expected: Any, op: str) -> bool:
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if candidate is MISSING or candidate is None:
            continue
        try:
            if op == "$gt" and candidate > expected:
                return True
            if op == "$gte" and candidate >= expected:
                return True
            if op == "$lt" and candidate < expected:
                return True
            if op == "$lte" and candidate <= expected:
                return True
        except TypeError:
            continue
    return False


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$eq" and not _equals(value, operand):
                return False
            elif op == "$ne" and _equals(value, operand):
                return False
            elif op == "$in" and not any(_equals(value, item) for item in operand):
                return False
            elif op == "$nin" and any(_equals(value, item) for item in operand):
                return False
            elif op == "$exists" and (value is not MISSING) != bool(operand):
                return False
            elif op in ("$gt", "$gte", "$lt", "$lte") and not _compare(value, operand, op):
                return False
            elif op not in ("$eq", "$ne", "$in", "$nin", "$exists", "$gt", "$gte", "$lt", "$lte"):
                raise InternalError(f"Unsupported query operator: {op}")
        return True
    return _equals(value, condition)


def matches(doc: Document, filter: Document) -> bool:
    for key, condition in filter.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif not _matches_condition(get_path(doc, key), condition):
            return False
    return True


def apply_update(doc: Document, update: Document) -> None:
    for op, changes in update.items():
        for path, value in changes.items():
            current = get_path(doc, path)
            if op == "$set":
                set_path(doc, path, copy.deepcopy(value))
            elif op == "$unset":
                unset_path(doc, path)
            elif op == "$inc":
                set_path(doc, path, (0 if current is MISSING else current) + value)
            elif op == "$push":
                items = list(current) if isinstance(current, list) else []
                if isinstance(value, dict) and "$each" in value:
                    position = value.get("$position", len(items))
                    items[position:position] = copy.deepcopy(value["$each"])
                    if "$slice" in value:
                        limit = value["$slice"]
                        items = items[:limit] if limit >= 0 else items[limit:]
                else:
                    items.append(copy.deepcopy(value))
                set_path(doc, path, items)
            elif op == "$addToSet":
                items = list(current) if isinstance(current, list) else []
                if value not in items:
                    items.append(copy.deepcopy(value))
                set_path(doc, path, items)
            elif op == "$pull":
                items = list(current) if isinstance(current, list) else []
                set_path(doc, path, [item for item in items if item != value])
            else:
                raise InternalError(f"Unsupported update operator: {op}")


def _type_rank(value: Any) -> int:
    if value is MISSING or value is None:
        return 0
    if isinstance(value, bool):
        return 6
    if isinstance(value, (int, float)):
        return 1
    if isinstance(value, str):
        return 2
    if isinstance(value, dict):
        return 3
    if isinstance(value, list):
        return 4
    if isinstance(value, ObjectId):
        return 5
    if isinstance(value, datetime):
        return 7
    return 8


def _sort_key(value: Any) -> Tuple[int, Any]:
    rank = _type_rank(value)
    if rank == 0:
        return (0, 0)
    if rank in (3, 4, 8):
        return (rank, str(value))
    return (rank, value)


class MemoryStore(DocumentStore):
    """Process-local backend evaluating query plans in Python.

    Writes are serialized by a lock, so conditional updates and toggles are
    atomic with respect to each other. Nothing is persisted.
    """

    def __init__(self):
        self._collections: Dict[str, List[Document]] = {}
        self._indexes: List[IndexSpec] = []
        self._lock = asyncio.Lock()

    def _docs(self, collection: str) -> List[Document]:
        return self._collections.setdefault(collection, [])

    def _check_unique(self, collection: str, candidate: Document, ignore: Optional[Document] = None) -> None:
        for spec in self._indexes:
            if spec.collection != collection or not spec.unique:
                continue
            key = tuple(get_path(candidate, k) for k in spec.keys)
            key = tuple(None if v is MISSING else v for v in key)
            for doc in self._docs(collection):
                if doc is ignore:
                    continue
                other = tuple(None if v is MISSING else v for v in (get_path(doc, k) for k in spec.keys))
                if other == key:
                    raise DuplicateRecordError(collection, spec.keys[0] if len(spec.keys) == 1 else ",".join(spec.keys))

    def _insert(self, collection: str, document: Document) -> Document:
        doc = copy.deepcopy(document)
        doc.setdefault("_id", ObjectId())
        self._check_unique(collection, doc)
        self._docs(collection).append(doc)
        return copy.deepcopy(doc)

    def _first(self, collection: str, filter: Document) -> Optional[Document]:
        for doc in self._docs(collection):
            if matches(doc, filter):
                return doc
        return None

    async def insert_one(self, collection: str, document: Document) -> Document:
        async with self._lock:
            return self._insert(collection, document)

    async def find_one(self, collection: str, filter: Document) -> Optional[Document]:
        doc = self._first(collection, filter)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        filter: Document,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        docs = [copy.deepcopy(d) for d in self._docs(collection) if matches(d, filter)]
        if sort:
            docs = self._sort(docs, sort)
        if limit:
            docs = docs[:limit]
        return docs

    async def update_one(self, collection: str, filter: Document, update: Document) -> Optional[Document]:
        async with self._lock:
            doc = self._first(collection, filter)
            if doc is None:
                return None
            updated = copy.deepcopy(doc)
            apply_update(updated, update)
            self._check_unique(collection, updated, ignore=doc)
            doc.clear()
            doc.update(updated)
            return copy.deepcopy(doc)

    async def delete_one(self, collection: str, filter: Document) -> Optional[Document]:
        async with self._lock:
            return self._delete(collection, filter)

    def _delete(self, collection: str, filter: Document) -> Optional[Document]:
        docs = self._docs(collection)
        for i, doc in enumerate(docs):
            if matches(doc, filter):
                return docs.pop(i)
        return None

    async def count(self, collection: str, filter: Document) -> int:
        return sum(1 for doc in self._docs(collection) if matches(doc, filter))

    async def toggle(
        self, collection: str, key: Document, extra: Optional[Document] = None
    ) -> Tuple[bool, Optional[Document]]:
        async with self._lock:
            removed = self._delete(collection, key)
            if removed is not None:
                return False, None
            return True, self._insert(collection, {**(extra or {}), **key})

    async def ensure_indexes(self, specs: Sequence[IndexSpec]) -> None:
        for spec in specs:
            if spec not in self._indexes:
                self._indexes.append(spec)
        logger.debug(f"Memory store tracking {len(self._indexes)} indexes")

    async def ping(self) -> bool:
        return True

    # ---------- plan execution ----------

    async def aggregate(self, plan: QueryPlan) -> List[Document]:
        docs = [copy.deepcopy(d) for d in self._docs(plan.collection)]
        return self._run(plan, docs)

    async def aggregate_page(self, plan: QueryPlan, skip: int, limit: int) -> Tuple[List[Document], int]:
        docs = await self.aggregate(plan)
        return docs[skip:skip + limit], len(docs)

    def _run(self, plan: QueryPlan, docs: List[Document]) -> List[Document]:
        for stage in plan.stages:
            docs = self._apply(plan.collection, stage, docs)
        return docs

    def _apply(self, collection: str, stage: Stage, docs: List[Document]) -> List[Document]:
        if isinstance(stage, Match):
            return [d for d in docs if matches(d, stage.filter)]
        if isinstance(stage, TextSearch):
            return self._text_search(collection, stage.query, docs)
        if isinstance(stage, Lookup):
            return [self._lookup(stage, d) for d in docs]
        if isinstance(stage, AddFields):
            for doc in docs:
                for name, expr in stage.fields:
                    value = self._evaluate(doc, expr)
                    if value is MISSING:
                        unset_path(doc, name)
                    else:
                        set_path(doc, name, value)
            return docs
        if isinstance(stage, Unwind):
            return list(self._unwind(stage.path, docs))
        if isinstance(stage, Project):
            return [self._project(stage, d) for d in docs]
        if isinstance(stage, Sort):
            return self._sort(docs, stage.keys)
        if isinstance(stage, Totals):
            return self._totals(stage, docs)
        raise InternalError(f"Unsupported stage: {type(stage).__name__}")

    def _text_search(self, collection: str, query: str, docs: List[Document]) -> List[Document]:
        fields = [k for spec in self._indexes if spec.collection == collection and spec.text for k in spec.keys]
        if not fields:
            raise InternalError(f"Text search requires a text index on {collection}")
        terms = set(_WORD.findall(query.lower()))
        found = []
        for doc in docs:
            words = set()
            for name in fields:
                value = get_path(doc, name)
                if isinstance(value, str):
                    words.update(_WORD.findall(value.lower()))
            if terms & words:
                found.append(doc)
        return found

    def _lookup(self, stage: Lookup, doc: Document) -> Document:
        local = get_path(doc, stage.local_field)
        if local is MISSING:
            local = None
        keys = local if isinstance(local, list) else [local]
        joined = []
        for foreign in self._collections.get(stage.from_, []):
            value = get_path(foreign, stage.foreign_field)
            if any(_equals(value, key) for key in keys):
                joined.append(copy.deepcopy(foreign))
        if stage.pipeline is not None:
            joined = self._run(stage.pipeline, joined)
        set_path(doc, stage.as_, joined)
        return doc

    def _evaluate(self, doc: Document, expr: Any) -> Any:
        if isinstance(expr, Ref):
            return get_path(doc, expr.path)
        if isinstance(expr, Size):
            value = get_path(doc, expr.path)
            return len(value) if isinstance(value, list) else 0
        if isinstance(expr, First):
            value = get_path(doc, expr.path)
            if isinstance(value, list):
                return value[0] if value else MISSING
            return None if value is MISSING else value
        if isinstance(expr, Contains):
            value = get_path(doc, expr.path)
            return isinstance(value, list) and any(item == expr.value for item in value)
        return expr

    def _totals(self, stage: Totals, docs: List[Document]) -> List[Document]:
        if not docs:
            return []
        row: Document = {"_id": None}
        for name, expr in stage.fields:
            values = (self._evaluate(doc, expr) for doc in docs)
            # non-numeric values are ignored, as $sum does
            row[name] = sum(v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool))
        return [row]

    def _unwind(self, path: str, docs: Iterable[Document]) -> Iterable[Document]:
        for doc in docs:
            value = get_path(doc, path)
            if value is MISSING or value is None or value == []:
                continue
            if not isinstance(value, list):
                yield doc
                continue
            for item in value:
                out = copy.deepcopy(doc)
                set_path(out, path, item)
                yield out

    def _project(self, stage: Project, doc: Document) -> Document:
        if stage.include:
            out: Document = {}
            if "_id" not in stage.exclude and "_id" in doc:
                out["_id"] = doc["_id"]
            for path in stage.include:
                value = get_path(doc, path)
                if value is not MISSING:
                    set_path(out, path, value)
            return out
        out = copy.deepcopy(doc)
        for path in stage.exclude:
            unset_path(out, path)
        return out

    def _sort(self, docs: List[Document], keys: Sequence[Tuple[str, int]]) -> List[Document]:
        ordered = list(docs)
        for name, direction in reversed(list(keys)):
            ordered.sort(key=lambda d: _sort_key(get_path(d, name)), reverse=direction < 0)
        return ordered
