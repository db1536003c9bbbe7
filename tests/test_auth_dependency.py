"""Unit tests for the bearer-token auth dependency."""

import pytest
from jose import jwt

from common.auth import JWTAuth, create_auth_dependency
from common.utils.exceptions import UnauthorizedException

SECRET = "test-secret"


@pytest.fixture
def auth():
    return JWTAuth(secret=SECRET)


@pytest.fixture
def get_current_user_id(auth):
    return create_auth_dependency(lambda: auth)


def _token(claims, secret=SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


class TestGetCurrentUserId:
    @pytest.mark.asyncio
    async def test_returns_subject(self, get_current_user_id):
        user_id = await get_current_user_id(authorization=f"Bearer {_token({'sub': 'user-1'})}")
        assert user_id == "user-1"

    @pytest.mark.asyncio
    async def test_falls_back_to_uid_claim(self, get_current_user_id):
        user_id = await get_current_user_id(authorization=f"Bearer {_token({'uid': 'user-2'})}")
        assert user_id == "user-2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "header, code",
        [
            (None, "UNAUTHORIZED"),
            ("Token abc", "INVALID_AUTH_SCHEME"),
            ("Bearer ", "EMPTY_TOKEN"),
            ("Bearer not-a-jwt", "INVALID_TOKEN"),
        ],
    )
    async def test_rejects_bad_headers(self, get_current_user_id, header, code):
        with pytest.raises(UnauthorizedException) as exc:
            await get_current_user_id(authorization=header)
        assert exc.value.code == code
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_wrong_signature(self, get_current_user_id):
        token = _token({"sub": "user-1"}, secret="other-secret")

        with pytest.raises(UnauthorizedException) as exc:
            await get_current_user_id(authorization=f"Bearer {token}")
        assert exc.value.code == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_rejects_token_without_subject(self, get_current_user_id):
        with pytest.raises(UnauthorizedException) as exc:
            await get_current_user_id(authorization=f"Bearer {_token({'role': 'user'})}")
        assert exc.value.message == "Token missing user ID"

    @pytest.mark.asyncio
    async def test_rejects_revoked_token(self, auth, get_current_user_id):
        token = _token({"sub": "user-1"})
        await auth.revoke_token(token)

        with pytest.raises(UnauthorizedException) as exc:
            await get_current_user_id(authorization=f"Bearer {token}")
        assert "revoked" in exc.value.message
