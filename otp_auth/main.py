"""
OTP Auth application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `services/`, `api/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIASGIMiddleware

from otp_auth.api.v1.api import api_router
from otp_auth.core.config import settings
from otp_auth.core.exceptions import SigningKeyMissingError, register_exception_handlers
from otp_auth.core.rate_limit import limiter
from otp_auth.db.base import Base
from otp_auth.db.session import engine

# Ensure all models are imported so metadata.create_all can see them
from otp_auth.models.user import User  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    if not settings.SECRET_KEY:
        raise SigningKeyMissingError("SECRET_KEY must be set before the API can start")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    logger.info("🚀 %s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Password + email OTP authentication",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Rate limiter (fixed window per client IP), checked before routing
    application.state.limiter = limiter
    application.add_middleware(SlowAPIASGIMiddleware)

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @application.get("/", include_in_schema=False)
    @limiter.exempt
    async def root() -> dict:
        return {"message": "Auth Backend API is running..."}

    # Uploaded profile images, served read-only
    upload_dir = settings.UPLOAD_DIR.resolve()
    upload_dir.mkdir(parents=True, exist_ok=True)
    application.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")
    logger.info("Uploads served from %s", upload_dir)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("otp_auth.main:app", host="0.0.0.0", port=settings.PORT)
