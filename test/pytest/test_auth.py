import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from app.core.config import settings
from app.services.auth_service import AuthService, is_client


@pytest.fixture
def hs256(monkeypatch):
    monkeypatch.setattr(settings, "jwt_algorithm", "HS256")
    monkeypatch.setattr(settings, "jwt_public_key", "test-secret")
    return "test-secret"


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_valid_token_gives_user_context(hs256):
    token = jwt.encode({"sub": "u1", "user_type": "client"}, hs256, algorithm="HS256")
    user = await AuthService.get_current_user(bearer(token))
    assert user.user_id == "u1"
    assert is_client(user.role)


@pytest.mark.asyncio
async def test_role_defaults_to_preserver(hs256):
    token = jwt.encode({"sub": "u2"}, hs256, algorithm="HS256")
    user = await AuthService.get_current_user(bearer(token))
    assert user.role == "preserver"


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [
    "not-a-jwt",
    jwt.encode({"sub": "u1"}, "other-secret", algorithm="HS256"),
    jwt.encode({"user_type": "client"}, "test-secret", algorithm="HS256"),
])
async def test_bad_tokens_are_unauthorized(hs256, token):
    with pytest.raises(HTTPException) as exc:
        await AuthService.get_current_user(bearer(token))
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_missing_credentials_are_unauthorized():
    with pytest.raises(HTTPException) as exc:
        await AuthService.get_current_user(None)
    assert exc.value.status_code == 401
