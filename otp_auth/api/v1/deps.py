"""
FastAPI dependencies — bearer-token auth gate and database session.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from otp_auth.core.config import settings
from otp_auth.core.exceptions import AuthenticationError
from otp_auth.core.security import decode_access_token
from otp_auth.db.session import async_session_factory
from otp_auth.models.user import User
from otp_auth.schemas.token import TokenPayload
from otp_auth.services.auth_service import get_user_by_id

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields our own "no token" message
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/verify-otp", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a live user.

    Rejections are all 401 but keep distinct messages (and log reasons):
    no token, expired, invalid/tampered, user no longer exists.
    """
    if not token:
        logger.info("Auth rejected: no bearer token")
        raise AuthenticationError(
            "Not authorized, no token", status_code=401, reason="missing"
        )

    try:
        payload = TokenPayload(**decode_access_token(token))
    except AuthenticationError as exc:
        logger.info("Auth rejected: token %s", exc.reason)
        raise

    user = await get_user_by_id(db, payload.sub)
    if user is None:
        logger.info("Auth rejected: user %s no longer exists", payload.sub)
        raise AuthenticationError(
            "Not authorized, user not found", status_code=401, reason="unknown_user"
        )
    return user
