"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "OTP Auth"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    PORT: int = 5000

    # ── Database (async SQLAlchemy) ─────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./otp_auth.db"

    # ── JWT ──────────────────────────────────────────────────────────
    # No default: tokens must never be signed with a guessable key.
    SECRET_KEY: str = ""
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # ── OTP / credentials ───────────────────────────────────────────
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 12

    # ── Profile image uploads ───────────────────────────────────────
    UPLOAD_DIR: Path = Path("uploads")
    MAX_IMAGE_BYTES: int = 2 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: list[str] = ["image/jpeg", "image/png"]

    # ── Email delivery ──────────────────────────────────────────────
    EMAIL_BACKEND: str = "smtp"  # smtp | console
    EMAIL_FROM: str = "no-reply@otp-auth.local"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0
    SMTP_MAX_ATTEMPTS: int = 2

    # ── Rate limiting (fixed window, per client IP) ─────────────────
    RATE_LIMIT: str = "100/15 minutes"
    RATE_LIMIT_ENABLED: bool = True

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @field_validator("CORS_ORIGINS", "ALLOWED_IMAGE_TYPES", mode="before")
    @classmethod
    def _parse_csv(cls, v: object) -> list[str]:
        if isinstance(v, str) and not v.lstrip().startswith("["):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    @field_validator("EMAIL_BACKEND")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"smtp", "console"}:
            raise ValueError("EMAIL_BACKEND must be 'smtp' or 'console'")
        return v

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()

if not settings.SECRET_KEY:
    import logging

    logging.getLogger("otp_auth.core.config").warning(
        "SECRET_KEY is not set: token signing is disabled and the "
        "application will refuse to start until it is configured."
    )
