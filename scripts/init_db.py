import asyncio
import sys
from pathlib import Path

from loguru import logger

sys.path.insert(0, str(Path(__file__).parent.parent))

from vidtube.core.config import StoreSettings
from vidtube.db.database import create_store, init_store
from vidtube.db.indexes import INDEXES


async def main():
    settings = StoreSettings()
    logger.info(f"Creating indexes on {settings.store_backend.value} store...")

    store = create_store(settings)
    try:
        await store.ping()
        await init_store(store)
        logger.success(f"Index setup completed: {len(INDEXES)} indexes ensured")
    except Exception as e:
        logger.exception(f"Error creating indexes: {e}")
        sys.exit(1)
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
