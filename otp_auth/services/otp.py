"""
One-time passcode generation. Independent of storage and delivery.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from otp_auth.core.config import settings


def generate_otp(length: int | None = None) -> str:
    """Return a random numeric code of exactly *length* digits, e.g. ``"483920"``."""
    length = length or settings.OTP_LENGTH
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def issue_otp(now: datetime | None = None) -> tuple[str, datetime]:
    """Mint a code together with its expiry timestamp."""
    now = now or datetime.now(timezone.utc)
    return generate_otp(), now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return True
    # SQLite hands back naive datetimes even for timezone-aware columns
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now >= expires_at


def codes_match(stored: str | None, submitted: str) -> bool:
    if stored is None:
        return False
    return secrets.compare_digest(stored.encode(), submitted.encode())
