from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger

from vidtube.db.store import DocumentStore
from vidtube.models.base import utcnow


@dataclass(frozen=True)
class ToggleResult:
    on: bool
    record: Optional[Dict[str, Any]] = None


class ToggleMutator:
    """Existence-keyed on/off switch for join records such as likes and subscriptions.

    After any call at most one record exists for ``key``; the store performs
    the check and the write as one conditional operation.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def toggle(self, collection: str, key: Dict[str, Any]) -> ToggleResult:
        now = utcnow()
        on, record = await self.store.toggle(collection, dict(key), {"createdAt": now, "updatedAt": now})
        logger.info(f"Toggled {collection} {key} -> {'on' if on else 'off'}")
        return ToggleResult(on=on, record=record)

    async def is_on(self, collection: str, key: Dict[str, Any]) -> bool:
        return await self.store.find_one(collection, key) is not None
