from bson import ObjectId
from loguru import logger

from vidtube.core.errors import NotFoundError
from vidtube.db.indexes import VIDEOS
from vidtube.db.repository import CommentRepository, TweetRepository, to_object_id
from vidtube.db.store import DocumentStore
from vidtube.models.comments import Comment, Tweet
from vidtube.services import graph
from vidtube.services.pagination import Page, PageParams, paginate
from vidtube.services.video_service import ensure_owner


class CommentService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.comments = CommentRepository(store)

    async def _video_id(self, video_id: str, viewer_id: ObjectId) -> ObjectId:
        oid = to_object_id(video_id, "video id")
        if not await self.store.find_one(VIDEOS, {"_id": oid, **graph.visible_to(viewer_id)}):
            raise NotFoundError("Video not found.")
        return oid

    async def _owned(self, comment_id: str, user_id: ObjectId) -> Comment:
        comment = await self.comments.find_by_id(to_object_id(comment_id, "comment id"))
        if comment is None:
            raise NotFoundError("Comment not found.")
        ensure_owner(comment.owner, user_id, "comment")
        return comment

    async def list_comments(self, video_id: str, viewer_id: ObjectId, params: PageParams) -> Page:
        oid = await self._video_id(video_id, viewer_id)
        return await paginate(self.store, graph.video_comments(oid, viewer_id), params)

    async def add_comment(self, video_id: str, user_id: ObjectId, content: str) -> Comment:
        oid = await self._video_id(video_id, user_id)
        comment = await self.comments.create(self.comments.build(content=content, video=oid, owner=user_id))
        logger.info(f"User {user_id} commented {comment.id} on video {oid}")
        return comment

    async def update_comment(self, comment_id: str, user_id: ObjectId, content: str) -> Comment:
        comment = await self._owned(comment_id, user_id)
        updated = await self.comments.update(comment.id, {"$set": {"content": content}})
        if updated is None:
            raise NotFoundError("Comment not found.")
        return updated

    async def delete_comment(self, comment_id: str, user_id: ObjectId) -> None:
        comment = await self._owned(comment_id, user_id)
        await self.comments.delete(comment.id)


class TweetService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.tweets = TweetRepository(store)

    async def _owned(self, tweet_id: str, user_id: ObjectId) -> Tweet:
        tweet = await self.tweets.find_by_id(to_object_id(tweet_id, "tweet id"))
        if tweet is None:
            raise NotFoundError("Tweet not found.")
        ensure_owner(tweet.owner, user_id, "tweet")
        return tweet

    async def create_tweet(self, user_id: ObjectId, content: str) -> Tweet:
        tweet = await self.tweets.create(self.tweets.build(content=content, owner=user_id))
        logger.info(f"User {user_id} posted tweet {tweet.id}")
        return tweet

    async def user_tweets(self, user_id: str, viewer_id: ObjectId, params: PageParams) -> Page:
        oid = to_object_id(user_id, "user id")
        return await paginate(self.store, graph.user_tweets(oid, viewer_id), params)

    async def update_tweet(self, tweet_id: str, user_id: ObjectId, content: str) -> Tweet:
        tweet = await self._owned(tweet_id, user_id)
        updated = await self.tweets.update(tweet.id, {"$set": {"content": content}})
        if updated is None:
            raise NotFoundError("Tweet not found.")
        return updated

    async def delete_tweet(self, tweet_id: str, user_id: ObjectId) -> None:
        tweet = await self._owned(tweet_id, user_id)
        await self.tweets.delete(tweet.id)
