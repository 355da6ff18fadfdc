from fastapi import Request
from loguru import logger

from vidtube.core.config import StoreBackend, StoreSettings
from vidtube.db.indexes import INDEXES
from vidtube.db.memory import MemoryStore
from vidtube.db.store import DocumentStore


def create_store(settings: StoreSettings) -> DocumentStore:
    if settings.store_backend == StoreBackend.MEMORY:
        logger.warning("Using the in-memory document store, data is not persisted")
        return MemoryStore()

    from vidtube.db.mongo import MongoStore

    logger.info(f"Connecting to MongoDB database {settings.mongodb_db}")
    return MongoStore(
        settings.mongodb_uri,
        settings.mongodb_db,
        timeout_ms=settings.store_timeout_ms,
    )


async def init_store(store: DocumentStore) -> DocumentStore:
    await store.ensure_indexes(INDEXES)
    return store


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store
