from typing import Any, Dict

from bson import ObjectId

from vidtube.core.errors import NotFoundError, ValidationError
from vidtube.db.indexes import COMMENTS, LIKES, SUBSCRIPTIONS, TWEETS, USERS, VIDEOS
from vidtube.db.repository import to_object_id
from vidtube.db.store import DocumentStore
from vidtube.models.social import Like, LikeTarget, Subscription
from vidtube.services import graph
from vidtube.services.pagination import Page, PageParams, paginate
from vidtube.services.toggle_service import ToggleMutator, ToggleResult

TARGET_COLLECTIONS = {
    LikeTarget.VIDEO: VIDEOS,
    LikeTarget.COMMENT: COMMENTS,
    LikeTarget.TWEET: TWEETS,
}


class LikeService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.mutator = ToggleMutator(store)

    async def toggle(self, user_id: ObjectId, kind: LikeTarget, target_id: str) -> ToggleResult:
        target = to_object_id(target_id, f"{kind.value} id")
        lookup: Dict[str, Any] = {"_id": target}
        if kind is LikeTarget.VIDEO:
            lookup.update(graph.visible_to(user_id))
        if not await self.store.find_one(TARGET_COLLECTIONS[kind], lookup):
            raise NotFoundError(f"{kind.value.capitalize()} not found.")
        return await self.mutator.toggle(LIKES, Like.key(user_id, kind, target))

    async def liked_videos(self, user_id: ObjectId, params: PageParams) -> Page:
        return await paginate(self.store, graph.liked_videos(user_id), params)


class SubscriptionService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.mutator = ToggleMutator(store)

    async def _user_id(self, user_id: str, label: str) -> ObjectId:
        oid = to_object_id(user_id, f"{label} id")
        if not await self.store.find_one(USERS, {"_id": oid}):
            raise NotFoundError(f"{label.capitalize()} does not exist.")
        return oid

    async def toggle(self, subscriber_id: ObjectId, channel_id: str) -> ToggleResult:
        channel = await self._user_id(channel_id, "channel")
        if channel == subscriber_id:
            raise ValidationError("You cannot subscribe to your own channel.")
        return await self.mutator.toggle(SUBSCRIPTIONS, Subscription.key(subscriber_id, channel))

    async def subscribers(self, channel_id: str, params: PageParams) -> Dict[str, Any]:
        channel = await self._user_id(channel_id, "channel")
        page = await paginate(self.store, graph.channel_subscribers(channel), params)
        return {
            "channel": channel,
            "subscribers": [doc["subscriber"] for doc in page.docs],
            "totalSubscribers": page.total_docs,
            "pagination": page.model_dump(by_alias=True, exclude={"docs"}),
        }

    async def subscribed_channels(self, subscriber_id: str, params: PageParams) -> Dict[str, Any]:
        subscriber = await self._user_id(subscriber_id, "subscriber")
        page = await paginate(self.store, graph.subscribed_channels(subscriber), params)
        return {
            "subscriber": subscriber,
            "channels": [doc["channel"] for doc in page.docs],
            "totalChannels": page.total_docs,
            "pagination": page.model_dump(by_alias=True, exclude={"docs"}),
        }
