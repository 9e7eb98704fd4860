"""
V1 API router aggregator — wires all endpoint modules together.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from otp_auth.api.v1.deps import get_db
from otp_auth.api.v1.endpoints import auth
from otp_auth.core.config import settings
from otp_auth.core.rate_limit import limiter
from otp_auth.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

api_router = APIRouter()

# Auth (register, login, OTP, profile, account deletion)
api_router.include_router(auth.router)


# ── Health ──────────────────────────────────────────────────────────
@api_router.get("/health", response_model=HealthResponse, tags=["health"])
@limiter.exempt
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: database connectivity."""
    result = HealthResponse(version=settings.VERSION)
    try:
        await db.execute(select(1))
        result.db = True
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)
        result.status = "degraded"
    return result
