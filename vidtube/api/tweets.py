from fastapi import APIRouter, Depends, status

from vidtube.api.deps import get_tweet_service, page_params
from vidtube.core.responses import respond
from vidtube.schemas.content import ContentRequest
from vidtube.schemas.user import UserPublic
from vidtube.services.comment_service import TweetService
from vidtube.services.pagination import PageParams
from vidtube.utils.security import get_current_user

tweets_router = APIRouter()


@tweets_router.post("")
async def create_tweet(
    payload: ContentRequest,
    current_user: UserPublic = Depends(get_current_user),
    service: TweetService = Depends(get_tweet_service),
):
    tweet = await service.create_tweet(current_user.id, payload.content)
    return respond(tweet, "Tweet created successfully.", status.HTTP_201_CREATED)


@tweets_router.get("/user/{user_id}")
async def user_tweets(
    user_id: str,
    params: PageParams = Depends(page_params),
    current_user: UserPublic = Depends(get_current_user),
    service: TweetService = Depends(get_tweet_service),
):
    page = await service.user_tweets(user_id, current_user.id, params)
    return respond(page, "Tweets fetched successfully.")


@tweets_router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    payload: ContentRequest,
    current_user: UserPublic = Depends(get_current_user),
    service: TweetService = Depends(get_tweet_service),
):
    tweet = await service.update_tweet(tweet_id, current_user.id, payload.content)
    return respond(tweet, "Tweet updated successfully.")


@tweets_router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    current_user: UserPublic = Depends(get_current_user),
    service: TweetService = Depends(get_tweet_service),
):
    await service.delete_tweet(tweet_id, current_user.id)
    return respond({}, "Tweet deleted successfully.")
