from typing import Optional

from fastapi import Depends, Query, Request

from vidtube.core.config import Settings
from vidtube.db.database import get_store
from vidtube.db.store import DocumentStore
from vidtube.services.comment_service import CommentService, TweetService
from vidtube.services.dashboard_service import DashboardService
from vidtube.services.pagination import PageParams, normalize_page_params
from vidtube.services.playlist_service import PlaylistService
from vidtube.services.social_service import LikeService, SubscriptionService
from vidtube.services.user_service import UserService
from vidtube.services.video_service import VideoService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def page_params(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
) -> PageParams:
    return normalize_page_params(page, limit, settings.pagination)


def get_user_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(store, settings.jwt)


def get_video_service(store: DocumentStore = Depends(get_store)) -> VideoService:
    return VideoService(store)


def get_comment_service(store: DocumentStore = Depends(get_store)) -> CommentService:
    return CommentService(store)


def get_tweet_service(store: DocumentStore = Depends(get_store)) -> TweetService:
    return TweetService(store)


def get_like_service(store: DocumentStore = Depends(get_store)) -> LikeService:
    return LikeService(store)


def get_subscription_service(store: DocumentStore = Depends(get_store)) -> SubscriptionService:
    return SubscriptionService(store)


def get_playlist_service(store: DocumentStore = Depends(get_store)) -> PlaylistService:
    return PlaylistService(store)


def get_dashboard_service(store: DocumentStore = Depends(get_store)) -> DashboardService:
    return DashboardService(store)
