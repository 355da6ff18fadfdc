from fastapi import APIRouter, Depends, status

from vidtube.api.deps import get_comment_service, page_params
from vidtube.core.responses import respond
from vidtube.schemas.content import ContentRequest
from vidtube.schemas.user import UserPublic
from vidtube.services.comment_service import CommentService
from vidtube.services.pagination import PageParams
from vidtube.utils.security import get_current_user

comments_router = APIRouter()


@comments_router.get("/{video_id}")
async def list_comments(
    video_id: str,
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    page = await service.list_comments(video_id, current_user.id, params)
    return respond(page, "Comments fetched successfully.")


@comments_router.post("/{video_id}")
async def add_comment(
    video_id: str,
    payload: ContentRequest,
    current_user: UserPublic = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.add_comment(video_id, current_user.id, payload.content)
    return respond(comment, "Comment added successfully.", status.HTTP_201_CREATED)


@comments_router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: str,
    payload: ContentRequest,
    current_user: UserPublic = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.update_comment(comment_id, current_user.id, payload.content)
    return respond(comment, "Comment updated successfully.")


@comments_router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(comment_id, current_user.id)
    return respond({}, "Comment deleted successfully.")
