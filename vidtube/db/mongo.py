from functools import wraps
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger
from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument, TEXT
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from vidtube.core.errors import DuplicateRecordError, InternalError, ServiceUnavailableError
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

TOGGLE_ATTEMPTS = 5


def compile_expr(expr: Any) -> Any:
    if isinstance(expr, Ref):
        return f"${expr.path}"
    if isinstance(expr, Size):
        return {"$size": {"$ifNull": [f"${expr.path}", []]}}
    if isinstance(expr, First):
        return {"$first": f"${expr.path}"}
    if isinstance(expr, Contains):
        return {"$in": [expr.value, {"$ifNull": [f"${expr.path}", []]}]}
    return {"$literal": expr}


def compile_stage(stage: Stage) -> Dict[str, Any]:
    if isinstance(stage, Match):
        return {"$match": stage.filter}
    if isinstance(stage, Lookup):
        spec = {
            "from": stage.from_,
            "localField": stage.local_field,
            "foreignField": stage.foreign_field,
            "as": stage.as_,
        }
        if stage.pipeline is not None:
            spec["pipeline"] = compile_plan(stage.pipeline)
        return {"$lookup": spec}
    if isinstance(stage, AddFields):
        return {"$addFields": {name: compile_expr(expr) for name, expr in stage.fields}}
    if isinstance(stage, Unwind):
        return {"$unwind": f"${stage.path}"}
    if isinstance(stage, Project):
        if stage.include:
            projection = {name: 1 for name in stage.include}
            projection.update({name: 0 for name in stage.exclude})
        else:
            projection = {name: 0 for name in stage.exclude}
        return {"$project": projection}
    if isinstance(stage, Sort):
        return {"$sort": dict(stage.keys)}
    if isinstance(stage, Totals):
        group: Dict[str, Any] = {"_id": None}
        group.update({name: {"$sum": compile_expr(expr)} for name, expr in stage.fields})
        return {"$group": group}
    raise InternalError(f"Unsupported stage: {type(stage).__name__}")


def compile_plan(plan: QueryPlan) -> List[Dict[str, Any]]:
    # $text must live in the first $match of a pipeline
    criteria: Dict[str, Any] = {}
    rest: List[Dict[str, Any]] = []
    for stage in plan.stages:
        if isinstance(stage, TextSearch):
            criteria["$text"] = {"$search": stage.query}
        elif isinstance(stage, Match):
            criteria.update(stage.filter)
        else:
            rest.append(compile_stage(stage))
    return ([{"$match": criteria}] if criteria else []) + rest


def _duplicate_field(exc: DuplicateKeyError) -> Optional[str]:
    pattern = (exc.details or {}).get("keyPattern") or {}
    keys = list(pattern)
    if not keys:
        return None
    return keys[0] if len(keys) == 1 else ",".join(keys)


def translate_errors(func):
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except DuplicateKeyError:
            raise
        except ConnectionFailure as e:
            logger.warning(f"Document store unreachable during {func.__name__}: {e}")
            raise ServiceUnavailableError("Database is unreachable, retry later.")
        except PyMongoError as e:
            if e.timeout:
                logger.warning(f"Document store timed out during {func.__name__}: {e}")
                raise ServiceUnavailableError("Database timed out, retry later.")
            raise InternalError("Database operation failed.") from e

    return wrapper


class MongoStore(DocumentStore):
    def __init__(self, uri: str, database: str, timeout_ms: int = 5000, client: Optional[AsyncMongoClient] = None):
        self.client = client or AsyncMongoClient(uri, timeoutMS=timeout_ms, tz_aware=True)
        self.db = self.client[database]

    @translate_errors
    async def insert_one(self, collection: str, document: Document) -> Document:
        doc = dict(document)
        try:
            result = await self.db[collection].insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateRecordError(collection, _duplicate_field(e))
        doc["_id"] = result.inserted_id
        return doc

    @translate_errors
    async def find_one(self, collection: str, filter: Document) -> Optional[Document]:
        return await self.db[collection].find_one(filter)

    @translate_errors
    async def find(
        self,
        collection: str,
        filter: Document,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        cursor = self.db[collection].find(filter)
        if sort:
            cursor = cursor.sort(list(sort))
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list()

    @translate_errors
    async def update_one(self, collection: str, filter: Document, update: Document) -> Optional[Document]:
        try:
            return await self.db[collection].find_one_and_update(
                filter, update, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            raise DuplicateRecordError(collection, _duplicate_field(e))

    @translate_errors
    async def delete_one(self, collection: str, filter: Document) -> Optional[Document]:
        return await self.db[collection].find_one_and_delete(filter)

    @translate_errors
    async def count(self, collection: str, filter: Document) -> int:
        return await self.db[collection].count_documents(filter)

    @translate_errors
    async def aggregate(self, plan: QueryPlan) -> List[Document]:
        cursor = await self.db[plan.collection].aggregate(compile_plan(plan))
        return await cursor.to_list()

    @translate_errors
    async def aggregate_page(self, plan: QueryPlan, skip: int, limit: int) -> Tuple[List[Document], int]:
        pipeline = compile_plan(plan) + [
            {
                "$facet": {
                    "docs": [{"$skip": skip}, {"$limit": limit}],
                    "total": [{"$count": "count"}],
                }
            }
        ]
        cursor = await self.db[plan.collection].aggregate(pipeline)
        result = await cursor.to_list()
        facet = result[0] if result else {"docs": [], "total": []}
        total = facet["total"][0]["count"] if facet["total"] else 0
        return facet["docs"], total

    @translate_errors
    async def toggle(
        self, collection: str, key: Document, extra: Optional[Document] = None
    ) -> Tuple[bool, Optional[Document]]:
        # relies on a unique index over the key fields; a lost insert race
        # means another caller turned the record on, so we retry and delete it
        for attempt in range(TOGGLE_ATTEMPTS):
            removed = await self.db[collection].find_one_and_delete(key)
            if removed is not None:
                return False, None
            doc = {**(extra or {}), **key}
            try:
                result = await self.db[collection].insert_one(doc)
            except DuplicateKeyError:
                logger.debug(f"Toggle race on {collection} {key}, attempt {attempt + 1}")
                continue
            doc["_id"] = result.inserted_id
            return True, doc
        raise ServiceUnavailableError("Too much contention on this resource, retry later.")

    @translate_errors
    async def ensure_indexes(self, specs: Sequence[IndexSpec]) -> None:
        for spec in specs:
            kind = TEXT if spec.text else ASCENDING
            await self.db[spec.collection].create_index(
                [(name, kind) for name in spec.keys],
                name=spec.name,
                unique=spec.unique,
            )
            logger.info(f"Ensured index {spec.name} on {spec.collection}")

    @translate_errors
    async def ping(self) -> bool:
        await self.client.admin.command("ping")
        return True

    async def close(self) -> None:
        await self.client.close()
