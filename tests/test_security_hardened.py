"""
Security Hardening Verification Tests.

Verifies:
1. Bearer gate rejections keep distinct messages (no token, expired,
   tampered, user gone)
2. Session tokens live for one hour
3. Token operations refuse to run without a signing key
4. Passwords are only ever stored hashed
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from jose import jwt

from otp_auth.core import security
from otp_auth.core.config import settings
from otp_auth.core.exceptions import AuthenticationError, SigningKeyMissingError
from otp_auth.core.security import create_access_token, decode_access_token

PROFILE = "/api/v1/auth/profile"


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_profile_requires_token(async_client: AsyncClient):
    resp = await async_client.get(PROFILE)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, no token"
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_non_bearer_scheme_counts_as_missing(async_client: AsyncClient, make_user):
    user = await make_user()
    token = create_access_token(user.id)
    resp = await async_client.get(PROFILE, headers={"Authorization": f"Basic {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, no token"


@pytest.mark.asyncio
async def test_expired_token_rejected(async_client: AsyncClient, make_user):
    user = await make_user()
    token = create_access_token(user.id, expires_delta=timedelta(seconds=-5))
    resp = await async_client.get(PROFILE, headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token expired"


@pytest.mark.asyncio
async def test_tampered_signature_rejected(async_client: AsyncClient, make_user):
    user = await make_user()
    token = create_access_token(user.id)
    header, payload, signature = token.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    resp = await async_client.get(PROFILE, headers=_bearer(f"{header}.{payload}.{flipped}"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_token_signed_with_other_key_rejected(async_client: AsyncClient, make_user):
    user = await make_user()
    forged = jwt.encode(
        {"sub": user.id, "type": "access", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "attacker-key",
        algorithm="HS256",
    )
    resp = await async_client.get(PROFILE, headers=_bearer(forged))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_garbage_token_rejected(async_client: AsyncClient):
    resp = await async_client.get(PROFILE, headers=_bearer("not.a.jwt"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_token_for_deleted_user_rejected(async_client: AsyncClient):
    token = create_access_token("0" * 32)
    resp = await async_client.get(PROFILE, headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, user not found"


@pytest.mark.asyncio
async def test_delete_account_requires_token(async_client: AsyncClient):
    resp = await async_client.delete("/api/v1/auth/delete-account")
    assert resp.status_code == 401


def test_token_lifetime_is_one_hour():
    before = datetime.now(timezone.utc)
    payload = decode_access_token(create_access_token("abc"))
    lifetime = datetime.fromtimestamp(payload["exp"], tz=timezone.utc) - before
    assert timedelta(minutes=59) < lifetime <= timedelta(hours=1, seconds=1)
    assert payload["sub"] == "abc"
    assert payload["type"] == "access"


def test_token_without_access_type_rejected():
    token = jwt.encode(
        {"sub": "abc", "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(AuthenticationError) as info:
        decode_access_token(token)
    assert info.value.reason == "invalid"
    assert info.value.status_code == 401


def test_expired_and_invalid_reasons_differ():
    expired = create_access_token("abc", expires_delta=timedelta(seconds=-1))
    with pytest.raises(AuthenticationError) as info:
        decode_access_token(expired)
    assert info.value.reason == "expired"

    with pytest.raises(AuthenticationError) as info:
        decode_access_token(expired + "x")
    assert info.value.reason == "invalid"


def test_missing_signing_key_fails_fast(monkeypatch):
    monkeypatch.setattr(settings, "SECRET_KEY", "")
    with pytest.raises(SigningKeyMissingError):
        create_access_token("abc")
    with pytest.raises(SigningKeyMissingError):
        decode_access_token("anything")


def test_password_hash_never_plaintext():
    hashed = security.get_password_hash("Abcdef1")
    assert hashed != "Abcdef1"
    assert "Abcdef1" not in hashed
    assert security.verify_password("Abcdef1", hashed)
    assert not security.verify_password("abcdef1", hashed)
    assert security.get_password_hash("Abcdef1") != hashed  # salted
