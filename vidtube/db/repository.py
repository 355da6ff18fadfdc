from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from bson import ObjectId
from pydantic import ValidationError as SchemaError

from vidtube.core.errors import ValidationError
from vidtube.db.indexes import COMMENTS, PLAYLISTS, TWEETS, USERS, VIDEOS
from vidtube.db.store import Document, DocumentStore
from vidtube.models.base import Record, utcnow
from vidtube.models.comments import Comment, Tweet
from vidtube.models.social import Playlist
from vidtube.models.users import User
from vidtube.models.videos import Video

T = TypeVar("T", bound=Record)


def to_object_id(value: Union[str, ObjectId, None], label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}.")
    return ObjectId(value)


class Repository(Generic[T]):
    """Typed access to one collection.

    Records are validated as pydantic models before they are written, and
    every read is parsed back into the model.
    """

    collection: str
    model: Type[T]

    def __init__(self, store: DocumentStore):
        self.store = store

    def build(self, **data: Any) -> T:
        try:
            return self.model(**data)
        except SchemaError as e:
            raise ValidationError(
                f"Invalid {self.model.__name__.lower()} data.",
                errors=[{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()],
            )

    def _parse(self, doc: Optional[Document]) -> Optional[T]:
        return self.model.model_validate(doc) if doc is not None else None

    async def find_by_id(self, id: Union[str, ObjectId]) -> Optional[T]:
        return self._parse(await self.store.find_one(self.collection, {"_id": to_object_id(id)}))

    async def find_one(self, filter: Dict[str, Any]) -> Optional[T]:
        return self._parse(await self.store.find_one(self.collection, filter))

    async def exists(self, filter: Dict[str, Any]) -> bool:
        return await self.store.find_one(self.collection, filter) is not None

    async def create(self, record: T) -> T:
        doc = await self.store.insert_one(self.collection, record.to_document())
        return self.model.model_validate(doc)

    async def update(
        self,
        id: Union[str, ObjectId],
        update: Dict[str, Any],
        extra_filter: Optional[Dict[str, Any]] = None,
    ) -> Optional[T]:
        filter = {"_id": to_object_id(id)}
        filter.update(extra_filter or {})
        changes = dict(update)
        changes["$set"] = {**changes.get("$set", {}), "updatedAt": utcnow()}
        return self._parse(await self.store.update_one(self.collection, filter, changes))

    async def delete(self, id: Union[str, ObjectId]) -> Optional[T]:
        return self._parse(await self.store.delete_one(self.collection, {"_id": to_object_id(id)}))


class UserRepository(Repository[User]):
    collection = USERS
    model = User

    async def find_by_login(self, username: Optional[str], email: Optional[str]) -> Optional[User]:
        clauses = []
        if username:
            clauses.append({"username": username.strip().lower()})
        if email:
            clauses.append({"email": email.strip().lower()})
        if not clauses:
            return None
        return await self.find_one({"$or": clauses})


class VideoRepository(Repository[Video]):
    collection = VIDEOS
    model = Video


class CommentRepository(Repository[Comment]):
    collection = COMMENTS
    model = Comment


class TweetRepository(Repository[Tweet]):
    collection = TWEETS
    model = Tweet


class PlaylistRepository(Repository[Playlist]):
    collection = PLAYLISTS
    model = Playlist
