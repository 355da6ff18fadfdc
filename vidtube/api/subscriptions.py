from fastapi import APIRouter, Depends

from vidtube.api.deps import get_subscription_service, page_params
from vidtube.core.responses import respond
from vidtube.schemas.user import UserPublic
from vidtube.services.pagination import PageParams
from vidtube.services.social_service import SubscriptionService
from vidtube.utils.security import get_current_user

subscriptions_router = APIRouter()


@subscriptions_router.post("/c/{channel_id}")
async def toggle_subscription(
    channel_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    result = await service.toggle(current_user.id, channel_id)
    message = "Subscribed successfully." if result.on else "Unsubscribed successfully."
    return respond({"isSubscribed": result.on, "subscription": result.record}, message)


@subscriptions_router.get("/c/{channel_id}")
async def channel_subscribers(
    channel_id: str,
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    data = await service.subscribers(channel_id, params)
    return respond(data, "Subscribers fetched successfully.")


@subscriptions_router.get("/u/{subscriber_id}")
async def subscribed_channels(
    subscriber_id: str,
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    data = await service.subscribed_channels(subscriber_id, params)
    return respond(data, "Subscribed channels fetched successfully.")
