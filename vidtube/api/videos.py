from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from vidtube.api.deps import get_user_service, get_video_service, page_params
from vidtube.clients.media_client import MediaUploader, get_media
from vidtube.core.responses import respond
from vidtube.schemas.user import UserPublic
from vidtube.services.pagination import PageParams
from vidtube.services.user_service import UserService
from vidtube.services.video_service import VideoService
from vidtube.utils.security import get_current_user

videos_router = APIRouter()


@videos_router.get("")
async def list_videos(
    query: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_type: Optional[str] = Query(default=None, alias="sortType"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    page = await service.list_videos(params, query, sort_by, sort_type, user_id)
    return respond(page, "Videos fetched successfully.")


@videos_router.post("")
async def publish_video(
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    video_file: Optional[UploadFile] = File(default=None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(default=None),
    current_user: UserPublic = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    media: MediaUploader = Depends(get_media),
):
    video = await service.publish(current_user.id, title, description, video_file, thumbnail, media)
    return respond(video, "Video published successfully.", status.HTTP_201_CREATED)


@videos_router.get("/{video_id}")
async def get_video(
    video_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    users: UserService = Depends(get_user_service),
):
    video = await service.view_video(video_id, current_user.id)
    await users.record_view(current_user.id, video["_id"])
    return respond(video, "Video fetched successfully.")


@videos_router.patch("/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    thumbnail: Optional[UploadFile] = File(default=None),
    current_user: UserPublic = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
    media: MediaUploader = Depends(get_media),
):
    video = await service.update_video(video_id, current_user.id, title, description, thumbnail, media)
    return respond(video, "Video updated successfully.")


@videos_router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    await service.delete_video(video_id, current_user.id)
    return respond({}, "Video deleted successfully.")


@videos_router.patch("/toggle/publish/{video_id}")
async def toggle_publish(
    video_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    video = await service.toggle_publish(video_id, current_user.id)
    return respond({"isPublished": video.is_published}, "Publish status toggled successfully.")
