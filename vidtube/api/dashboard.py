from fastapi import APIRouter, Depends

from vidtube.api.deps import get_dashboard_service, page_params
from vidtube.core.responses import respond
from vidtube.schemas.user import UserPublic
from vidtube.services.dashboard_service import DashboardService
from vidtube.services.pagination import PageParams
from vidtube.utils.security import get_current_user

dashboard_router = APIRouter()


@dashboard_router.get("/stats")
async def channel_stats(
    current_user: UserPublic = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    stats = await service.stats(current_user.id)
    return respond(stats, "Channel stats fetched successfully.")


@dashboard_router.get("/videos")
async def channel_videos(
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    page = await service.videos(current_user.id, params)
    return respond(page, "Channel videos fetched successfully.")
