"""The fixed-window limiter in front of the auth routes."""

import pytest
from httpx import AsyncClient

from otp_auth.core.rate_limit import limiter

VERIFY = "/api/v1/auth/verify-otp"
UNKNOWN = {"email": "ghost@x.com", "otp": "123456"}
TOO_MANY = "Too many requests from this IP, please try again after 15 minutes"


@pytest.fixture
def rate_limiting():
    limiter.reset()
    limiter.enabled = True
    yield limiter
    limiter.enabled = False
    limiter.reset()


@pytest.mark.asyncio
async def test_hundred_requests_per_window(async_client: AsyncClient, rate_limiting):
    for _ in range(100):
        resp = await async_client.post(VERIFY, json=UNKNOWN)
        assert resp.status_code == 400

    blocked = await async_client.post(VERIFY, json=UNKNOWN)
    assert blocked.status_code == 429
    assert blocked.json() == {"detail": TOO_MANY, "success": False}

    # The window is shared across routes
    login = await async_client.post(
        "/api/v1/auth/login", json={"email": "ghost@x.com", "password": "whatever"}
    )
    assert login.status_code == 429


@pytest.mark.asyncio
async def test_rejected_bearer_tokens_are_counted(async_client: AsyncClient, rate_limiting):
    """Token guessing against the gate uses up the window."""
    headers = {"Authorization": "Bearer junk"}
    for _ in range(100):
        resp = await async_client.get("/api/v1/auth/profile", headers=headers)
        assert resp.status_code == 401

    blocked = await async_client.get("/api/v1/auth/profile", headers=headers)
    assert blocked.status_code == 429
    assert blocked.json()["detail"] == TOO_MANY


@pytest.mark.asyncio
async def test_malformed_bodies_are_counted(async_client: AsyncClient, rate_limiting):
    for _ in range(100):
        resp = await async_client.post(
            "/api/v1/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    blocked = await async_client.post("/api/v1/auth/login", json={"email": "a@b.co"})
    assert blocked.status_code == 429


@pytest.mark.asyncio
async def test_root_and_health_are_not_limited(async_client: AsyncClient, rate_limiting):
    for _ in range(100):
        await async_client.post(VERIFY, json=UNKNOWN)
    assert (await async_client.post(VERIFY, json=UNKNOWN)).status_code == 429

    assert (await async_client.get("/")).status_code == 200
    assert (await async_client.get("/api/v1/health")).status_code == 200


@pytest.mark.asyncio
async def test_disabled_limiter_never_blocks(async_client: AsyncClient):
    for _ in range(110):
        resp = await async_client.post(VERIFY, json=UNKNOWN)
        assert resp.status_code == 400
