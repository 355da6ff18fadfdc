from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from vidtube.db.pipeline import QueryPlan

Document = Dict[str, Any]


@dataclass(frozen=True)
class IndexSpec:
    collection: str
    keys: Tuple[str, ...]
    unique: bool = False
    text: bool = False

    @property
    def name(self) -> str:
        suffix = "text" if self.text else "unique" if self.unique else "idx"
        return f"{'_'.join(self.keys)}_{suffix}"


class DocumentStore(ABC):
    """Async document store contract shared by every backend.

    Filters and updates use the MongoDB query/update language. Writes are
    atomic per document; ``toggle`` is the only multi-step operation and each
    backend must make it behave as a single conditional write.
    """

    @abstractmethod
    async def insert_one(self, collection: str, document: Document) -> Document:
        ...

    @abstractmethod
    async def find_one(self, collection: str, filter: Document) -> Optional[Document]:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Document,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        ...

    @abstractmethod
    async def update_one(self, collection: str, filter: Document, update: Document) -> Optional[Document]:
        """Apply ``update`` to the first match and return the updated document."""

    @abstractmethod
    async def delete_one(self, collection: str, filter: Document) -> Optional[Document]:
        """Delete the first match and return it."""

    @abstractmethod
    async def count(self, collection: str, filter: Document) -> int:
        ...

    @abstractmethod
    async def aggregate(self, plan: QueryPlan) -> List[Document]:
        ...

    @abstractmethod
    async def aggregate_page(self, plan: QueryPlan, skip: int, limit: int) -> Tuple[List[Document], int]:
        """Run ``plan`` and return one window of it plus the total match count."""

    @abstractmethod
    async def toggle(
        self, collection: str, key: Document, extra: Optional[Document] = None
    ) -> Tuple[bool, Optional[Document]]:
        """Delete the record matching ``key`` if present, otherwise insert ``key`` plus ``extra``.

        Returns ``(True, inserted)`` when the record now exists and
        ``(False, None)`` when it was removed.
        """

    @abstractmethod
    async def ensure_indexes(self, specs: Sequence[IndexSpec]) -> None:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        return None
