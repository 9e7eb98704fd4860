"""
Domain error taxonomy and global exception handlers.

Every failure surfaced to a client carries a human-readable ``detail``;
handlers below turn them into ``{"detail": ..., "success": false}`` and
prevent stack-trace leakage.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class AppError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)


class ValidationError(AppError):
    """Malformed input the caller can fix."""

    status_code = 400
    default_detail = "Invalid input"


class ConflictError(AppError):
    """Unique constraint would be violated (duplicate email)."""

    status_code = 400
    default_detail = "User already exists with this email"


class AuthenticationError(AppError):
    """Bad credentials, bad/expired OTP, or bad/expired/missing token."""

    status_code = 400
    default_detail = "Authentication failed"

    def __init__(
        self,
        detail: str | None = None,
        *,
        status_code: int | None = None,
        reason: str = "invalid",
    ) -> None:
        super().__init__(detail, status_code=status_code)
        # Diagnostic only: "missing" | "expired" | "invalid" | "unknown_user"
        self.reason = reason


class NotFoundError(AppError):
    status_code = 404
    default_detail = "User not found"


class DependencyError(AppError):
    """The store or the notifier failed."""

    status_code = 500
    default_detail = "A required service is unavailable"


class InternalError(AppError):
    status_code = 500


class SigningKeyMissingError(RuntimeError):
    """Raised when a token operation is attempted without ``SECRET_KEY``."""


# ── Handlers ────────────────────────────────────────────────────────
def _error_body(detail: object) -> dict:
    return {"detail": detail, "success": False}


async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.detail, exc_info=exc.__cause__)
    headers = None
    if exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail),
        headers=headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        msg = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
        messages.append(f"{field}: {msg}" if field else msg)
    return JSONResponse(
        status_code=400,
        content=_error_body(", ".join(messages) or "Invalid request"),
    )


async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit exceeded: %s", exc.detail)
    return JSONResponse(
        status_code=429,
        content=_error_body("Too many requests from this IP, please try again after 15 minutes"),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content=_error_body("Database constraint violation"),
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal database error"),
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
