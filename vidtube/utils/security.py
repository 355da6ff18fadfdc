import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from loguru import logger
from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from vidtube.core.config import JWTSettings
from vidtube.core.errors import AuthenticationError, ValidationError
from vidtube.db.database import get_store
from vidtube.db.repository import UserRepository
from vidtube.db.store import DocumentStore
from vidtube.schemas.user import UserPublic

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

auth_scheme = APIKeyHeader(name="Authorization", scheme_name="Bearer", auto_error=False)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except (UnknownHashError, ValueError):
        logger.warning("Stored password hash could not be identified")
        return False


async def create_access_token(to_encode: Dict[str, Any], settings: JWTSettings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = dict(to_encode)
    payload.update({"exp": expire, "type": "access"})
    return jwt.encode(payload, settings.access_token_secret, algorithm=settings.algorithm)


async def create_refresh_token(to_encode: Dict[str, Any], settings: JWTSettings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.refresh_token_expire_minutes)
    payload = dict(to_encode)
    # jti keeps two tokens issued within the same second distinct
    payload.update({"exp": expire, "type": "refresh", "jti": uuid.uuid4().hex})
    return jwt.encode(payload, settings.refresh_token_secret, algorithm=settings.algorithm)


async def verify_token(token: str, secret_key: str, algorithm: str, token_type: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired.")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Could not validate credentials.")
    if payload.get("type") != token_type:
        raise AuthenticationError("Invalid token type.")
    if not payload.get("id"):
        raise AuthenticationError("Invalid token payload.")
    return payload


def extract_access_token(request: Request, header: Optional[str]) -> Optional[str]:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    if header:
        return header[7:] if header.startswith("Bearer ") else header
    return None


async def get_current_user(
    request: Request,
    header: Optional[str] = Depends(auth_scheme),
    store: DocumentStore = Depends(get_store),
) -> UserPublic:
    token = extract_access_token(request, header)
    if not token:
        raise AuthenticationError("Unauthorized request.")

    settings: JWTSettings = request.app.state.settings.jwt
    payload = await verify_token(token, settings.access_token_secret, settings.algorithm, "access")

    try:
        user = await UserRepository(store).find_by_id(payload["id"])
    except ValidationError:
        raise AuthenticationError("Invalid access token.")
    if user is None:
        logger.warning(f"Access token presented for missing user {payload['id']}")
        raise AuthenticationError("Invalid access token.")

    current = UserPublic.from_user(user)
    request.state.user = current
    return current
