"""
HTTP client for the auth API.

The bearer token is attached by :class:`BearerAuth`, an ``httpx.Auth``
flow that reads the current token from client storage on every request.
Individual calls never set the header themselves.
"""

from __future__ import annotations

import httpx
from pydantic_settings import BaseSettings

from otp_auth.client.storage import TOKEN_KEY, FileStorage, MemoryStorage


class ClientSettings(BaseSettings):
    BACKEND_URL: str = "http://localhost:5000"
    API_PREFIX: str = "/api/v1"
    TIMEOUT_SECONDS: float = 15.0

    model_config = {"env_prefix": "OTP_AUTH_", "extra": "ignore"}


class BearerAuth(httpx.Auth):
    def __init__(self, storage: MemoryStorage | FileStorage) -> None:
        self.storage = storage

    def auth_flow(self, request: httpx.Request):
        token = self.storage.get_item(TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def create_api_client(
    storage: MemoryStorage | FileStorage,
    base_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    config = ClientSettings()
    if base_url is None:
        base_url = config.BACKEND_URL.rstrip("/") + config.API_PREFIX
    return httpx.AsyncClient(
        base_url=base_url,
        auth=BearerAuth(storage),
        timeout=config.TIMEOUT_SECONDS,
        transport=transport,
    )
