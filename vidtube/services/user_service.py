from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from fastapi import UploadFile
from loguru import logger

from vidtube.clients.media_client import MediaAsset, MediaUploader
from vidtube.core.config import JWTSettings
from vidtube.core.errors import (
    ApiError,
    AuthenticationError,
    ConflictError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from vidtube.db.repository import UserRepository
from vidtube.db.store import DocumentStore
from vidtube.models.users import User
from vidtube.schemas.token import Token
from vidtube.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterForm,
    UpdateAccountRequest,
    UserPublic,
)
from vidtube.services import graph
from vidtube.services.session_service import SessionTokenManager
from vidtube.utils.security import hash_password, verify_password

WATCH_HISTORY_LIMIT = 100


def _conflict(field: Optional[str]) -> ConflictError:
    label = "Email" if field == "email" else "Username"
    return ConflictError(f"{label} already exists.", errors=[{"field": field or "username"}])


async def _discard(media: MediaUploader, assets: List[MediaAsset]) -> None:
    for asset in assets:
        try:
            await media.delete(asset)
        except ApiError as e:
            logger.warning(f"Could not remove orphaned upload {asset.public_id}: {e.message}")


class UserService:
    def __init__(self, store: DocumentStore, jwt_settings: JWTSettings):
        self.store = store
        self.users = UserRepository(store)
        self.sessions = SessionTokenManager(store, jwt_settings)

    async def get_user(self, user_id) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    async def register(
        self,
        form: RegisterForm,
        avatar: Optional[UploadFile],
        cover_image: Optional[UploadFile],
        media: MediaUploader,
    ) -> UserPublic:
        existing = await self.users.find_by_login(form.username, form.email)
        if existing:
            field = "username" if existing.username == form.username.strip().lower() else "email"
            raise _conflict(field)

        if avatar is None:
            raise ValidationError("Avatar is required.")

        avatar_asset = await media.upload_file(avatar, "Avatar")
        uploaded = [avatar_asset]
        cover_url = ""
        if cover_image is not None:
            cover_asset = await media.upload_file(cover_image, "Cover image")
            uploaded.append(cover_asset)
            cover_url = cover_asset.url

        user = self.users.build(
            username=form.username,
            email=form.email,
            fullname=form.fullname,
            password=hash_password(form.password),
            avatar=avatar_asset.url,
            cover_image=cover_url,
        )
        try:
            created = await self.users.create(user)
        except DuplicateRecordError as e:
            await _discard(media, uploaded)
            raise _conflict(e.field)

        logger.info(f"Registered user {created.id} ({created.username})")
        return UserPublic.from_user(created)

    async def login(self, payload: LoginRequest) -> Tuple[UserPublic, Token]:
        user = await self.users.find_by_login(payload.username, payload.email)
        if user is None:
            raise NotFoundError("User not found.")

        if not verify_password(payload.password, user.password):
            logger.warning(f"Failed login for user {user.id}")
            raise AuthenticationError("Password is incorrect.")

        token = await self.sessions.issue(user)
        return UserPublic.from_user(user), token

    async def logout(self, user_id) -> None:
        await self.sessions.revoke(user_id)

    async def refresh(self, presented: Optional[str]) -> Tuple[UserPublic, Token]:
        user, token = await self.sessions.rotate(presented)
        return UserPublic.from_user(user), token

    async def change_password(self, user_id, payload: ChangePasswordRequest) -> None:
        user = await self.get_user(user_id)
        if not verify_password(payload.old_password, user.password):
            raise AuthenticationError("Old password is incorrect.")

        await self.users.update(
            user.id,
            {"$set": {"password": hash_password(payload.new_password)}, "$unset": {"refreshToken": ""}},
        )
        logger.info(f"Password changed for user {user.id}, sessions revoked")

    async def update_account(self, user_id, payload: UpdateAccountRequest) -> UserPublic:
        changes: Dict[str, Any] = {}
        if payload.fullname is not None:
            changes["fullname"] = payload.fullname.strip()
        if payload.email is not None:
            email = str(payload.email).strip().lower()
            if await self.users.exists({"email": email, "_id": {"$ne": user_id}}):
                raise _conflict("email")
            changes["email"] = email

        try:
            user = await self.users.update(user_id, {"$set": changes})
        except DuplicateRecordError as e:
            raise _conflict(e.field)
        if user is None:
            raise NotFoundError("User not found.")
        return UserPublic.from_user(user)

    async def update_image(self, user_id, file: Optional[UploadFile], field: str, media: MediaUploader) -> UserPublic:
        label = "Avatar" if field == "avatar" else "Cover image"
        if file is None:
            raise ValidationError(f"{label} file is required.")
        asset = await media.upload_file(file, label)
        user = await self.users.update(user_id, {"$set": {field: asset.url}})
        if user is None:
            raise NotFoundError("User not found.")
        return UserPublic.from_user(user)

    async def channel_profile(self, username: str, viewer_id: Optional[ObjectId]) -> Dict[str, Any]:
        if not username or not username.strip():
            raise ValidationError("Username is required.")
        channels = await self.store.aggregate(graph.channel_profile(username, viewer_id))
        if not channels:
            raise NotFoundError("Channel does not exist.")
        return channels[0]

    async def watch_history(self, user_id: ObjectId) -> List[Dict[str, Any]]:
        rows = await self.store.aggregate(graph.watch_history(user_id))
        if not rows:
            raise NotFoundError("User not found.")
        row = rows[0]
        return graph.order_by_ids(row.get("watchHistory", []), row.get("videos", []))

    async def record_view(self, user_id: ObjectId, video_id: ObjectId) -> None:
        await self.users.update(user_id, {"$pull": {"watchHistory": video_id}})
        # skipped when a concurrent view already re-added the video
        await self.users.update(
            user_id,
            {"$push": {"watchHistory": {"$each": [video_id], "$position": 0, "$slice": WATCH_HISTORY_LIMIT}}},
            extra_filter={"watchHistory": {"$ne": video_id}},
        )
