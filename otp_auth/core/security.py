"""
JWT session token creation / verification and password hashing (bcrypt).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from otp_auth.core.config import settings
from otp_auth.core.exceptions import AuthenticationError, SigningKeyMissingError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

_TOKEN_TYPE = "access"


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def dummy_verify() -> None:
    """Burn a hash comparison so unknown emails cost the same as bad passwords."""
    pwd_context.dummy_verify()


# ── JWT tokens ──────────────────────────────────────────────────────
def _signing_key() -> str:
    if not settings.SECRET_KEY:
        raise SigningKeyMissingError(
            "SECRET_KEY is not configured; refusing to sign or verify tokens"
        )
    return settings.SECRET_KEY


def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode(
        {"exp": expire, "sub": str(subject), "type": _TOKEN_TYPE},
        _signing_key(),
        algorithm=settings.ALGORITHM,
    )


def decode_access_token(token: str) -> dict:
    """Return the payload of a valid access token.

    Raises :class:`AuthenticationError` (401) whose ``reason`` is
    ``"expired"`` for a well-signed token past its ``exp`` and
    ``"invalid"`` for anything else (bad signature, malformed, wrong
    type, missing subject).
    """
    key = _signing_key()
    try:
        payload = jwt.decode(token, key, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise AuthenticationError(
            "Not authorized, token expired", status_code=401, reason="expired"
        ) from exc
    except JWTError as exc:
        raise AuthenticationError(
            "Not authorized, token failed", status_code=401, reason="invalid"
        ) from exc

    if payload.get("type") != _TOKEN_TYPE or not payload.get("sub"):
        raise AuthenticationError(
            "Not authorized, token failed", status_code=401, reason="invalid"
        )
    return payload
