"""
Denormalized views over the content graph.

Every function returns a ``QueryPlan``; nothing here talks to the store.
Owner profiles embedded in views carry only the public profile fields.
"""
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from vidtube.core.errors import ValidationError
from vidtube.db.indexes import COMMENTS, LIKES, PLAYLISTS, SUBSCRIPTIONS, TWEETS, USERS, VIDEOS
from vidtube.db.pipeline import Contains, PipelineBuilder, QueryPlan, Ref, Size

OWNER_FIELDS = ("fullname", "username", "avatar")
VIDEO_CARD_FIELDS = ("videoFile", "thumbnail", "title", "duration", "views", "owner", "createdAt")
VIDEO_SORT_FIELDS = ("createdAt", "title", "views", "duration")


def owner_profile(with_id: bool = False) -> QueryPlan:
    return PipelineBuilder(USERS).project(*OWNER_FIELDS, exclude_id=not with_id).build()


def with_owner(builder: PipelineBuilder, local_field: str = "owner", as_: Optional[str] = None) -> PipelineBuilder:
    target = as_ or local_field
    return builder.lookup(USERS, local_field, "_id", target, owner_profile()).first(target)


def _viewer_flag(viewer_id: Optional[ObjectId], path: str) -> Any:
    return Contains(viewer_id, path) if viewer_id is not None else False


def visible_to(viewer_id: Optional[ObjectId]) -> Dict[str, Any]:
    """Videos the viewer may see: published ones and their own drafts."""
    if viewer_id is None:
        return {"isPublished": True}
    return {"$or": [{"isPublished": True}, {"owner": viewer_id}]}


def video_cards(viewer_id: Optional[ObjectId] = None) -> QueryPlan:
    builder = PipelineBuilder(VIDEOS).match(visible_to(viewer_id))
    return with_owner(builder).project(*VIDEO_CARD_FIELDS).build()


def public_videos(
    query: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
    owner_id: Optional[ObjectId] = None,
) -> QueryPlan:
    sort_key = sort_by or "createdAt"
    if sort_key not in VIDEO_SORT_FIELDS:
        raise ValidationError(f"Cannot sort videos by '{sort_by}'.")
    builder = PipelineBuilder(VIDEOS).match(isPublished=True).search(query)
    if owner_id is not None:
        builder.match(owner=owner_id)
    return with_owner(builder).sort(sort_key, sort_type or "desc").build()


def video_detail(video_id: ObjectId, viewer_id: Optional[ObjectId] = None) -> QueryPlan:
    builder = PipelineBuilder(VIDEOS).match(_id=video_id)
    builder.lookup(LIKES, "_id", "video", "likes")
    with_owner(builder)
    return (
        builder.add_fields(
            likesCount=Size("likes"),
            isLiked=_viewer_flag(viewer_id, "likes.likedBy"),
        )
        .exclude("likes")
        .build()
    )


def video_comments(video_id: ObjectId, viewer_id: Optional[ObjectId] = None) -> QueryPlan:
    builder = PipelineBuilder(COMMENTS).match(video=video_id)
    with_owner(builder)
    builder.lookup(LIKES, "_id", "comment", "commentLikes")
    return (
        builder.add_fields(
            totalLikes=Size("commentLikes"),
            isLiked=_viewer_flag(viewer_id, "commentLikes.likedBy"),
        )
        .project("owner", "content", "totalLikes", "isLiked", "createdAt")
        .sort("createdAt", "desc")
        .build()
    )


def user_tweets(user_id: ObjectId, viewer_id: Optional[ObjectId] = None) -> QueryPlan:
    builder = PipelineBuilder(TWEETS).match(owner=user_id)
    with_owner(builder)
    builder.lookup(LIKES, "_id", "tweet", "likes")
    return (
        builder.add_fields(
            likesCount=Size("likes"),
            isLiked=_viewer_flag(viewer_id, "likes.likedBy"),
        )
        .project("owner", "content", "likesCount", "isLiked", "createdAt")
        .sort("createdAt", "desc")
        .build()
    )


def liked_videos(user_id: ObjectId) -> QueryPlan:
    return (
        PipelineBuilder(LIKES)
        .match(likedBy=user_id, video={"$exists": True})
        .lookup(VIDEOS, "video", "_id", "video", video_cards(user_id))
        .unwind("video")
        .project("video", "createdAt")
        .sort("createdAt", "desc")
        .build()
    )


def channel_subscribers(channel_id: ObjectId) -> QueryPlan:
    return (
        PipelineBuilder(SUBSCRIPTIONS)
        .match(channel=channel_id)
        .lookup(USERS, "subscriber", "_id", "subscriber", owner_profile(with_id=True))
        .unwind("subscriber")
        .project("subscriber", "createdAt")
        .sort("createdAt", "desc")
        .build()
    )


def subscribed_channels(subscriber_id: ObjectId) -> QueryPlan:
    return (
        PipelineBuilder(SUBSCRIPTIONS)
        .match(subscriber=subscriber_id)
        .lookup(USERS, "channel", "_id", "channel", owner_profile(with_id=True))
        .unwind("channel")
        .project("channel", "createdAt")
        .sort("createdAt", "desc")
        .build()
    )


def channel_profile(username: str, viewer_id: Optional[ObjectId] = None) -> QueryPlan:
    return (
        PipelineBuilder(USERS)
        .match(username=username.strip().lower())
        .lookup(SUBSCRIPTIONS, "_id", "channel", "subscribers")
        .lookup(SUBSCRIPTIONS, "_id", "subscriber", "subscribedTo")
        .add_fields(
            subscribersCount=Size("subscribers"),
            channelsSubscribedToCount=Size("subscribedTo"),
            isSubscribed=_viewer_flag(viewer_id, "subscribers.subscriber"),
        )
        .project(
            "fullname",
            "username",
            "email",
            "avatar",
            "coverImage",
            "subscribersCount",
            "channelsSubscribedToCount",
            "isSubscribed",
            "createdAt",
        )
        .build()
    )


def watch_history(user_id: ObjectId) -> QueryPlan:
    return (
        PipelineBuilder(USERS)
        .match(_id=user_id)
        .lookup(VIDEOS, "watchHistory", "_id", "videos", video_cards(user_id))
        .project("watchHistory", "videos")
        .build()
    )


def playlists(filter: Dict[str, Any], viewer_id: Optional[ObjectId] = None) -> QueryPlan:
    return (
        PipelineBuilder(PLAYLISTS)
        .match(filter)
        .lookup(VIDEOS, "videos", "_id", "videoDocs", video_cards(viewer_id))
        .project("name", "description", "owner", "videos", "videoDocs", "createdAt", "updatedAt")
        .sort("createdAt", "desc")
        .build()
    )


def channel_videos(owner_id: ObjectId) -> QueryPlan:
    return (
        PipelineBuilder(VIDEOS)
        .match(owner=owner_id)
        .lookup(LIKES, "_id", "video", "likes")
        .lookup(COMMENTS, "_id", "video", "comments")
        .add_fields(likesCount=Size("likes"), commentsCount=Size("comments"))
        .exclude("likes", "comments")
        .sort("createdAt", "desc")
        .build()
    )


def _ids_only(collection: str) -> QueryPlan:
    return PipelineBuilder(collection).project("_id").build()


def channel_totals(owner_id: ObjectId) -> QueryPlan:
    return (
        PipelineBuilder(VIDEOS)
        .match(owner=owner_id)
        .lookup(LIKES, "_id", "video", "likes", _ids_only(LIKES))
        .lookup(COMMENTS, "_id", "video", "comments", _ids_only(COMMENTS))
        .totals(
            totalVideos=1,
            totalVideoViews=Ref("views"),
            totalLikes=Size("likes"),
            totalComments=Size("comments"),
        )
        .build()
    )


def order_by_ids(ids: Iterable[ObjectId], docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Arrange joined documents in the order of the referencing id list."""
    by_id = {doc["_id"]: doc for doc in docs}
    return [by_id[i] for i in ids if i in by_id]
