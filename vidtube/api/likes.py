from fastapi import APIRouter, Depends

from vidtube.api.deps import get_like_service, page_params
from vidtube.core.responses import respond
from vidtube.models.social import LikeTarget
from vidtube.schemas.user import UserPublic
from vidtube.services.pagination import PageParams
from vidtube.services.social_service import LikeService
from vidtube.utils.security import get_current_user

likes_router = APIRouter()


async def _toggle(service: LikeService, user: UserPublic, kind: LikeTarget, target_id: str):
    result = await service.toggle(user.id, kind, target_id)
    message = f"{kind.value.capitalize()} {'liked' if result.on else 'unliked'} successfully."
    return respond({"isLiked": result.on, "like": result.record}, message)


@likes_router.post("/toggle/v/{video_id}")
async def toggle_video_like(
    video_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: LikeService = Depends(get_like_service),
):
    return await _toggle(service, current_user, LikeTarget.VIDEO, video_id)


@likes_router.post("/toggle/c/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: LikeService = Depends(get_like_service),
):
    return await _toggle(service, current_user, LikeTarget.COMMENT, comment_id)


@likes_router.post("/toggle/t/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: LikeService = Depends(get_like_service),
):
    return await _toggle(service, current_user, LikeTarget.TWEET, tweet_id)


@likes_router.get("/videos")
async def liked_videos(
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: LikeService = Depends(get_like_service),
):
    page = await service.liked_videos(current_user.id, params)
    return respond(page, "Liked videos fetched successfully.")
