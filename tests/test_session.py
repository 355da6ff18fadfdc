"""
Unit tests for the session token lifecycle (vidtube.services.session_service).

Tests cover:
- Issuing a token pair and persisting the refresh token
- Rotation and replay detection of superseded refresh tokens
- Revocation
- Token verification failures
"""

import asyncio

import jwt
import pytest
import pytest_asyncio

from vidtube.core.errors import AuthenticationError
from vidtube.db.repository import UserRepository
from vidtube.services.session_service import SessionTokenManager
from vidtube.utils.security import create_access_token, hash_password, verify_password, verify_token


@pytest.fixture
def sessions(store, settings):
    return SessionTokenManager(store, settings.jwt)


@pytest_asyncio.fixture
async def user(store):
    users = UserRepository(store)
    return await users.create(
        users.build(
            username="alice",
            email="alice@x.com",
            fullname="Alice",
            avatar="http://media.test/alice.png",
            password=hash_password("wonderland"),
        )
    )


# =============================================================================
# Credential Verifier
# =============================================================================

class TestPasswords:
    """Tests for password hashing."""

    def test_hash_verifies_and_is_salted(self):
        first, second = hash_password("secret-pw"), hash_password("secret-pw")
        assert first != second
        assert verify_password("secret-pw", first)
        assert not verify_password("wrong-pw", first)

    def test_unknown_hash_format_is_a_mismatch(self):
        assert not verify_password("secret-pw", "not-a-hash")


# =============================================================================
# Session Lifecycle
# =============================================================================

class TestSessionTokenManager:
    """Tests for issue / rotate / revoke."""

    @pytest.mark.asyncio
    async def test_issue_persists_refresh_token(self, sessions, store, user):
        token = await sessions.issue(user)

        stored = await store.find_one("users", {"_id": user.id})
        assert stored["refreshToken"] == token.refresh_token

        payload = jwt.decode(token.access_token, options={"verify_signature": False})
        assert payload["id"] == str(user.id)
        assert {"email", "username", "fullname", "exp"} <= set(payload)
        refresh_payload = jwt.decode(token.refresh_token, options={"verify_signature": False})
        assert set(refresh_payload) == {"id", "exp", "type", "jti"}

    @pytest.mark.asyncio
    async def test_rotate_replaces_stored_token(self, sessions, store, user):
        first = await sessions.issue(user)

        rotated_user, second = await sessions.rotate(first.refresh_token)

        assert rotated_user.id == user.id
        assert second.refresh_token != first.refresh_token
        stored = await store.find_one("users", {"_id": user.id})
        assert stored["refreshToken"] == second.refresh_token

    @pytest.mark.asyncio
    async def test_superseded_token_is_rejected(self, sessions, user):
        first = await sessions.issue(user)
        await sessions.rotate(first.refresh_token)

        with pytest.raises(AuthenticationError):
            await sessions.rotate(first.refresh_token)

    @pytest.mark.asyncio
    async def test_token_from_earlier_login_is_rejected(self, sessions, user):
        first = await sessions.issue(user)
        await sessions.issue(user)

        with pytest.raises(AuthenticationError):
            await sessions.rotate(first.refresh_token)

    @pytest.mark.asyncio
    async def test_concurrent_rotations_admit_one(self, sessions, user):
        token = await sessions.issue(user)

        results = await asyncio.gather(
            sessions.rotate(token.refresh_token),
            sessions.rotate(token.refresh_token),
            return_exceptions=True,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert sum(isinstance(r, AuthenticationError) for r in results) == 1

    @pytest.mark.asyncio
    async def test_revoke_invalidates_refresh_token(self, sessions, store, user):
        token = await sessions.issue(user)

        await sessions.revoke(user.id)

        assert "refreshToken" not in await store.find_one("users", {"_id": user.id})
        with pytest.raises(AuthenticationError):
            await sessions.rotate(token.refresh_token)

    @pytest.mark.asyncio
    async def test_access_token_cannot_be_used_to_refresh(self, sessions, user):
        token = await sessions.issue(user)

        with pytest.raises(AuthenticationError):
            await sessions.rotate(token.access_token)

    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self, sessions):
        with pytest.raises(AuthenticationError):
            await sessions.rotate(None)


class TestVerifyToken:
    """Tests for signature and expiry checks."""

    @pytest.mark.asyncio
    async def test_expired_token(self, settings):
        expired = settings.jwt.model_copy(update={"access_token_expire_minutes": -1})
        token = await create_access_token({"id": "abc"}, expired)

        with pytest.raises(AuthenticationError, match="expired"):
            await verify_token(token, settings.jwt.access_token_secret, settings.jwt.algorithm, "access")

    @pytest.mark.asyncio
    async def test_wrong_secret(self, settings):
        token = await create_access_token({"id": "abc"}, settings.jwt)

        with pytest.raises(AuthenticationError):
            await verify_token(token, settings.jwt.refresh_token_secret, settings.jwt.algorithm, "access")
