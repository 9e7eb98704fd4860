"""
User model: credentials, pending OTP and profile attributes.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, String

from otp_auth.core.security import get_password_hash, verify_password
from otp_auth.db.base import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(32), primary_key=True, default=_new_user_id)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    otp: str | None = Column(String(12), nullable=True)  # type: ignore[assignment]
    otp_expires_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    profile_image: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    company: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    age: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    dob: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Credentials ─────────────────────────────────────────────────
    def set_password(self, plain: str) -> None:
        """Hash *plain* and store it. The only path that writes the hash."""
        self.hashed_password = get_password_hash(plain)

    def check_password(self, plain: str) -> bool:
        return verify_password(plain, self.hashed_password)

    # ── One-time passcode ───────────────────────────────────────────
    def set_otp(self, code: str, expires_at: datetime) -> None:
        self.otp = code
        self.otp_expires_at = expires_at

    def clear_otp(self) -> None:
        self.otp = None
        self.otp_expires_at = None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
