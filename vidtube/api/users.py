from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaError

from vidtube.api.deps import get_settings, get_user_service
from vidtube.clients.media_client import MediaUploader, get_media
from vidtube.core.config import Settings
from vidtube.core.errors import ValidationError
from vidtube.core.responses import respond
from vidtube.schemas.token import Token
from vidtube.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterForm,
    UpdateAccountRequest,
    UserPublic,
)
from vidtube.services.user_service import UserService
from vidtube.utils.security import ACCESS_COOKIE, REFRESH_COOKIE, get_current_user

users_router = APIRouter()


def _set_session_cookies(response: JSONResponse, token: Token, settings: Settings) -> JSONResponse:
    options = {
        "httponly": True,
        "secure": settings.cookies.cookie_secure,
        "samesite": settings.cookies.cookie_samesite,
    }
    response.set_cookie(
        ACCESS_COOKIE,
        token.access_token,
        max_age=settings.jwt.access_token_expire_minutes * 60,
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        token.refresh_token,
        max_age=settings.jwt.refresh_token_expire_minutes * 60,
        **options,
    )
    return response


def _session_payload(user: UserPublic, token: Token) -> dict:
    return {
        "user": user,
        "accessToken": token.access_token,
        "refreshToken": token.refresh_token,
    }


@users_router.post("/register")
async def register(
    username: str = Form(...),
    email: str = Form(...),
    fullname: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(default=None),
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    service: UserService = Depends(get_user_service),
    media: MediaUploader = Depends(get_media),
):
    try:
        form = RegisterForm(username=username, email=email, fullname=fullname, password=password)
    except SchemaError as e:
        raise ValidationError(
            "Invalid registration data.",
            errors=[{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()],
        )
    user = await service.register(form, avatar, cover_image, media)
    return respond(user, "User registered successfully.", status.HTTP_201_CREATED)


@users_router.post("/login")
async def login(
    payload: LoginRequest,
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
):
    user, token = await service.login(payload)
    return _set_session_cookies(
        respond(_session_payload(user, token), "User logged in successfully."),
        token,
        settings,
    )


@users_router.post("/logout")
async def logout(
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
):
    await service.logout(current_user.id)
    response = respond({}, "User logged out successfully.")
    for cookie in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            cookie,
            httponly=True,
            secure=settings.cookies.cookie_secure,
            samesite=settings.cookies.cookie_samesite,
        )
    return response


@users_router.post("/refresh-token")
async def refresh_token(
    request: Request,
    payload: Optional[RefreshRequest] = Body(default=None),
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
):
    presented = request.cookies.get(REFRESH_COOKIE) or (payload.refresh_token if payload else None)
    user, token = await service.refresh(presented)
    return _set_session_cookies(
        respond(_session_payload(user, token), "Access token refreshed."),
        token,
        settings,
    )


@users_router.get("/me")
async def me(current_user: UserPublic = Depends(get_current_user)):
    return respond(current_user, "Current user fetched successfully.")


@users_router.patch("/update-password")
async def update_password(
    payload: ChangePasswordRequest,
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.change_password(current_user.id, payload)
    return respond({}, "Password changed successfully.")


@users_router.patch("/update-account")
async def update_account(
    payload: UpdateAccountRequest,
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_account(current_user.id, payload)
    return respond(user, "Account details updated successfully.")


@users_router.patch("/update-avatar")
async def update_avatar(
    avatar: Optional[UploadFile] = File(default=None),
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    media: MediaUploader = Depends(get_media),
):
    user = await service.update_image(current_user.id, avatar, "avatar", media)
    return respond(user, "Avatar updated successfully.")


@users_router.patch("/update-coverImage")
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    media: MediaUploader = Depends(get_media),
):
    user = await service.update_image(current_user.id, cover_image, "coverImage", media)
    return respond(user, "Cover image updated successfully.")


@users_router.get("/c/{username}")
async def channel_profile(
    username: str,
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    channel = await service.channel_profile(username, current_user.id)
    return respond(channel, "Channel fetched successfully.")


@users_router.get("/history")
async def watch_history(
    current_user: UserPublic = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    history = await service.watch_history(current_user.id)
    return respond(history, "Watch history fetched successfully.")
