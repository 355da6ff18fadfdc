import hmac
from typing import Optional, Tuple

from loguru import logger

from vidtube.core.config import JWTSettings
from vidtube.core.errors import AuthenticationError, InternalError, ValidationError
from vidtube.db.repository import UserRepository
from vidtube.db.store import DocumentStore
from vidtube.models.users import User
from vidtube.schemas.token import Token
from vidtube.utils.security import create_access_token, create_refresh_token, verify_token


class SessionTokenManager:
    """Issues, rotates and revokes the access/refresh token pair of a user.

    Only the most recently issued refresh token is stored on the user, so a
    superseded token can never be exchanged again.
    """

    def __init__(self, store: DocumentStore, settings: JWTSettings):
        self.users = UserRepository(store)
        self.settings = settings

    async def _sign(self, user: User) -> Token:
        access_token = await create_access_token(
            {
                "id": str(user.id),
                "email": user.email,
                "username": user.username,
                "fullname": user.fullname,
            },
            self.settings,
        )
        refresh_token = await create_refresh_token({"id": str(user.id)}, self.settings)
        return Token(access_token=access_token, refresh_token=refresh_token)

    async def issue(self, user: User) -> Token:
        token = await self._sign(user)
        updated = await self.users.update(user.id, {"$set": {"refreshToken": token.refresh_token}})
        if updated is None:
            raise InternalError("Error while generating access and refresh token.")
        logger.info(f"Issued session for user {user.id}")
        return token

    async def rotate(self, presented: Optional[str]) -> Tuple[User, Token]:
        if not presented:
            raise AuthenticationError("Refresh token is required.")

        payload = await verify_token(
            presented,
            self.settings.refresh_token_secret,
            self.settings.algorithm,
            "refresh",
        )
        try:
            user = await self.users.find_by_id(payload["id"])
        except ValidationError:
            raise AuthenticationError("Invalid refresh token.")
        if user is None:
            raise AuthenticationError("Invalid refresh token.")

        if not user.refresh_token or not hmac.compare_digest(user.refresh_token, presented):
            logger.warning(f"Superseded or revoked refresh token presented for user {user.id}")
            raise AuthenticationError("Refresh token is expired or used.")

        token = await self._sign(user)
        # compare-and-set so two concurrent rotations cannot both succeed
        updated = await self.users.update(
            user.id,
            {"$set": {"refreshToken": token.refresh_token}},
            extra_filter={"refreshToken": presented},
        )
        if updated is None:
            logger.warning(f"Concurrent refresh token rotation for user {user.id}")
            raise AuthenticationError("Refresh token is expired or used.")

        logger.info(f"Rotated session for user {user.id}")
        return updated, token

    async def revoke(self, user_id) -> None:
        await self.users.update(user_id, {"$unset": {"refreshToken": ""}})
        logger.info(f"Revoked session for user {user_id}")
