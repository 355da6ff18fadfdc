from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import UploadFile
from loguru import logger

from vidtube.clients.media_client import MediaUploader
from vidtube.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from vidtube.db.indexes import USERS, VIDEOS
from vidtube.db.repository import VideoRepository, to_object_id
from vidtube.db.store import DocumentStore
from vidtube.models.videos import Video
from vidtube.services import graph
from vidtube.services.pagination import Page, PageParams, paginate


def ensure_owner(owner_id: ObjectId, user_id: ObjectId, resource: str) -> None:
    if owner_id != user_id:
        raise PermissionDeniedError(f"Only the owner can modify this {resource}.")


class VideoService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.videos = VideoRepository(store)

    async def get_owned(self, video_id: str, user_id: ObjectId) -> Video:
        video = await self.videos.find_by_id(to_object_id(video_id, "video id"))
        if video is None:
            raise NotFoundError("Video not found.")
        ensure_owner(video.owner, user_id, "video")
        return video

    async def list_videos(
        self,
        params: PageParams,
        query: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Page:
        owner_id = None
        if user_id:
            owner_id = to_object_id(user_id, "user id")
            if not await self.store.find_one(USERS, {"_id": owner_id}):
                raise NotFoundError("User not found with this id.")
        plan = graph.public_videos(query, sort_by, sort_type, owner_id)
        return await paginate(self.store, plan, params)

    async def publish(
        self,
        owner_id: ObjectId,
        title: str,
        description: str,
        video_file: Optional[UploadFile],
        thumbnail: Optional[UploadFile],
        media: MediaUploader,
    ) -> Video:
        if not title or not title.strip() or not description or not description.strip():
            raise ValidationError("Title and description are required.")
        if video_file is None or thumbnail is None:
            raise ValidationError("Video file and thumbnail are required.")

        video_asset = await media.upload_file(video_file, "Video")
        thumbnail_asset = await media.upload_file(thumbnail, "Thumbnail")

        video = self.videos.build(
            video_file=video_asset.secure_url,
            thumbnail=thumbnail_asset.secure_url,
            title=title,
            description=description,
            duration=video_asset.duration,
            owner=owner_id,
        )
        created = await self.videos.create(video)
        logger.info(f"User {owner_id} published video {created.id}")
        return created

    async def view_video(self, video_id: str, viewer_id: Optional[ObjectId]) -> Dict[str, Any]:
        video = await self.videos.find_by_id(to_object_id(video_id, "video id"))
        # unpublished videos are only visible to their owner
        if video is None or (not video.is_published and video.owner != viewer_id):
            raise NotFoundError("Video not found.")

        await self.store.update_one(VIDEOS, {"_id": video.id}, {"$inc": {"views": 1}})
        found = await self.store.aggregate(graph.video_detail(video.id, viewer_id))
        if not found:
            raise NotFoundError("Video not found.")
        return found[0]

    async def update_video(
        self,
        video_id: str,
        user_id: ObjectId,
        title: Optional[str],
        description: Optional[str],
        thumbnail: Optional[UploadFile],
        media: MediaUploader,
    ) -> Video:
        if not title or not title.strip() or not description or not description.strip():
            raise ValidationError("Title and description are required.")
        video = await self.get_owned(video_id, user_id)

        changes: Dict[str, Any] = {"title": title.strip(), "description": description.strip()}
        if thumbnail is not None:
            changes["thumbnail"] = (await media.upload_file(thumbnail, "Thumbnail")).secure_url

        updated = await self.videos.update(video.id, {"$set": changes})
        if updated is None:
            raise NotFoundError("Video not found.")
        return updated

    async def delete_video(self, video_id: str, user_id: ObjectId) -> None:
        video = await self.get_owned(video_id, user_id)
        await self.videos.delete(video.id)
        logger.info(f"User {user_id} deleted video {video.id}")

    async def toggle_publish(self, video_id: str, user_id: ObjectId) -> Video:
        video = await self.get_owned(video_id, user_id)
        # conditional on the flag we read, so concurrent flips cannot cancel silently
        updated = await self.videos.update(
            video.id,
            {"$set": {"isPublished": not video.is_published}},
            extra_filter={"isPublished": video.is_published},
        )
        if updated is None:
            raise ConflictError("Video was modified concurrently, retry.")
        return updated
