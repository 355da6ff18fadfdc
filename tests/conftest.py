"""
Shared pytest fixtures for the VidTube test suite.

Provides reusable fixtures for:
- Settings with test secrets and no log file
- In-memory document store with indexes applied
- Fake media uploader (no network)
- FastAPI TestClient wired to the above
- Helpers registering users and publishing videos through the API
"""

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from vidtube.clients.media_client import MediaAsset, MediaUploader
from vidtube.core.config import (
    AppSettings,
    CookieSettings,
    JWTSettings,
    MediaSettings,
    PaginationSettings,
    Settings,
    StoreBackend,
    StoreSettings,
)
from vidtube.db.indexes import INDEXES
from vidtube.db.memory import MemoryStore
from vidtube.main import create_app

API = "/api/v1"
PASSWORD = "s3cret-pass"


class FakeMedia(MediaUploader):
    """Records uploads and deletions and returns deterministic asset URLs."""

    def __init__(self):
        self.uploads: List[str] = []
        self.deleted: List[str] = []

    async def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> MediaAsset:
        self.uploads.append(filename)
        n = len(self.uploads)
        return MediaAsset(
            url=f"http://media.test/{n}/{filename}",
            secure_url=f"https://media.test/{n}/{filename}",
            public_id=f"asset-{n}",
            duration=42.0,
        )

    async def delete(self, asset: MediaAsset) -> None:
        self.deleted.append(asset.public_id)


# =============================================================================
# Settings / Store Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Settings for tests: memory backend, fixed secrets, console-only logging."""
    return Settings(
        app=AppSettings(log_file=None),
        store=StoreSettings(store_backend=StoreBackend.MEMORY),
        jwt=JWTSettings(
            access_token_secret="test-access-secret-0123456789abcdef",
            refresh_token_secret="test-refresh-secret-0123456789abcdef",
        ),
        cookies=CookieSettings(),
        pagination=PaginationSettings(),
        media=MediaSettings(),
    )


@pytest_asyncio.fixture
async def store():
    """Empty in-memory store with every index registered."""
    memory = MemoryStore()
    await memory.ensure_indexes(INDEXES)
    return memory


@pytest.fixture
def media():
    """Fake media uploader."""
    return FakeMedia()


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def client(settings, media):
    """TestClient running the app lifespan against a fresh memory store."""
    app = create_app(settings=settings, store=MemoryStore(), media=media)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_user(client):
    """Register and log in a user; returns its id, tokens and auth headers."""

    def _register(username: str, email: Optional[str] = None, fullname: Optional[str] = None) -> Dict[str, Any]:
        response = client.post(
            f"{API}/users/register",
            data={
                "username": username,
                "email": email or f"{username}@example.com",
                "fullname": fullname or f"{username.capitalize()} Tester",
                "password": PASSWORD,
            },
            files={"avatar": ("avatar.png", b"avatar-bytes", "image/png")},
        )
        assert response.status_code == 201, response.text

        login = client.post(f"{API}/users/login", json={"username": username, "password": PASSWORD})
        assert login.status_code == 200, login.text
        data = login.json()["data"]
        return {
            "id": data["user"]["_id"],
            "username": username,
            "access": data["accessToken"],
            "refresh": data["refreshToken"],
            "headers": auth(data["accessToken"]),
        }

    return _register


@pytest.fixture
def publish_video(client):
    """Publish a video as the given user; returns the created video."""

    def _publish(user: Dict[str, Any], title: str = "My video", description: str = "A test video") -> Dict[str, Any]:
        response = client.post(
            f"{API}/videos",
            data={"title": title, "description": description},
            files={
                "videoFile": ("clip.mp4", b"video-bytes", "video/mp4"),
                "thumbnail": ("thumb.png", b"thumb-bytes", "image/png"),
            },
            headers=user["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _publish
