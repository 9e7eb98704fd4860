"""
Registration, login → OTP → session, profile and account deletion.

Per-user state lives in the ``users`` row rather than an explicit enum:

    Unregistered ──register──▶ Registered ──login──▶ OtpPending
    OtpPending ──verify_otp (match, in time)──▶ Authenticated (token issued)
    OtpPending ──verify_otp (mismatch / expired)──▶ Registered

The OTP is single-use: ``verify_otp`` clears it on every outcome once the
user is found. A repeated ``login`` overwrites a pending code.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from otp_auth.core.exceptions import (
    AuthenticationError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from otp_auth.core.security import create_access_token, dummy_verify
from otp_auth.models.user import User
from otp_auth.schemas.user import UserCreate, UserRead
from otp_auth.services.notifier import ConsoleNotifier, NotifierError, SmtpNotifier
from otp_auth.services.otp import codes_match, is_expired, issue_otp
from otp_auth.services.storage import ProfileImageStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_OTP = "Invalid or expired OTP. Please try logging in again."
OTP_DELIVERY_FAILED = "Failed to send OTP email. Please try again later."


# ── Lookups ─────────────────────────────────────────────────────────
async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


def user_view(user: User) -> UserRead:
    return UserRead.model_validate(user)


def _format_validation_errors(exc: PydanticValidationError) -> str:
    return ", ".join(
        str(err["msg"]).removeprefix("Value error, ") for err in exc.errors()
    )


# ── Registration ────────────────────────────────────────────────────
async def register_user(
    db: AsyncSession,
    store: ProfileImageStore,
    *,
    name: str,
    email: str,
    password: str,
    company: str | None = None,
    age: int | str | None = None,
    dob: date | str | None = None,
    image: UploadFile | None = None,
) -> User:
    """Create a user; never issues a token.

    Field and image-type checks run before anything is written. Once the
    image has been stored, any failure removes it again before the error
    propagates.
    """
    try:
        data = UserCreate(
            name=name, email=email, password=password, company=company, age=age, dob=dob
        )
    except PydanticValidationError as exc:
        raise ValidationError(_format_validation_errors(exc)) from exc

    if image is not None and not image.filename:
        image = None
    if image is not None:
        store.validate(image)

    profile_image = await store.save(image) if image is not None else None

    try:
        if await get_user_by_email(db, data.email) is not None:
            raise ConflictError("User already exists with this email")

        user = User(
            name=data.name,
            email=data.email,
            company=data.company,
            age=data.age,
            dob=data.dob,
            profile_image=profile_image,
        )
        user.set_password(data.password)
        db.add(user)
        await db.commit()
    except IntegrityError as exc:
        await _abort_registration(db, store, profile_image)
        raise ConflictError("Email already registered.") from exc
    except SQLAlchemyError as exc:
        await _abort_registration(db, store, profile_image)
        raise DependencyError("Server error during registration") from exc
    except Exception:
        await _abort_registration(db, store, profile_image)
        raise

    logger.info("Registered user %s", user.id)
    return user


async def _abort_registration(
    db: AsyncSession, store: ProfileImageStore, profile_image: str | None
) -> None:
    await db.rollback()
    if profile_image is not None:
        store.delete(profile_image)


# ── Login → OTP ─────────────────────────────────────────────────────
async def login_user(
    db: AsyncSession,
    notifier: SmtpNotifier | ConsoleNotifier,
    email: str,
    password: str,
) -> User:
    """Check credentials, store a fresh OTP and email it.

    Unknown email and wrong password are indistinguishable to the caller.
    A delivery failure raises :class:`DependencyError`; the stored code is
    kept valid so a code received by other means can still be verified.
    """
    user = await get_user_by_email(db, email.strip())
    if user is None:
        dummy_verify()
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not user.check_password(password):
        raise AuthenticationError(INVALID_CREDENTIALS)

    code, expires_at = issue_otp()
    user.set_otp(code, expires_at)
    await db.commit()

    try:
        await notifier.send_otp(user.email, code)
    except NotifierError as exc:
        logger.error("OTP delivery failed for user %s: %s", user.id, exc)
        raise DependencyError(OTP_DELIVERY_FAILED) from exc

    logger.info("OTP issued for user %s", user.id)
    return user


async def verify_otp(db: AsyncSession, email: str, code: str) -> tuple[str, User]:
    """Consume the pending OTP and return ``(token, user)`` on success."""
    user = await get_user_by_email(db, email.strip())
    if user is None:
        raise NotFoundError("User not found.", status_code=400)

    valid = codes_match(user.otp, code.strip()) and not is_expired(user.otp_expires_at)
    user.clear_otp()
    await db.commit()

    if not valid:
        logger.info("Rejected OTP for user %s", user.id)
        raise AuthenticationError(INVALID_OTP)

    token = create_access_token(user.id)
    logger.info("User %s authenticated", user.id)
    return token, user


# ── Account deletion ────────────────────────────────────────────────
async def delete_account(db: AsyncSession, store: ProfileImageStore, user_id: str) -> None:
    """Remove the profile image (if any) and then the record. Irreversible."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    store.delete(user.profile_image)
    await db.delete(user)
    await db.commit()
    logger.info("Deleted account %s", user_id)
