"""
Auth endpoints: register, login (OTP by email), OTP verification,
profile and account deletion.
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from otp_auth.api.v1.deps import get_current_user, get_db
from otp_auth.models.user import User
from otp_auth.schemas.token import (
    LoginRequest,
    MessageResponse,
    OtpVerifiedResponse,
    VerifyOtpRequest,
)
from otp_auth.schemas.user import ProfileResponse
from otp_auth.services import auth_service
from otp_auth.services.notifier import ConsoleNotifier, SmtpNotifier, get_notifier
from otp_auth.services.storage import ProfileImageStore, get_image_store

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    company: str | None = Form(None),
    age: str | None = Form(None),
    dob: str | None = Form(None),
    profile_image: UploadFile | None = File(None, alias="profileImage"),
    db: AsyncSession = Depends(get_db),
    store: ProfileImageStore = Depends(get_image_store),
) -> MessageResponse:
    """Create an account. Does not log the user in."""
    await auth_service.register_user(
        db,
        store,
        name=name,
        email=email,
        password=password,
        company=company,
        age=age,
        dob=dob,
        image=profile_image,
    )
    return MessageResponse(message="Registration successful! Please login to receive OTP.")


@router.post("/login", response_model=MessageResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    notifier: SmtpNotifier | ConsoleNotifier = Depends(get_notifier),
) -> MessageResponse:
    """Check email/password and email a one-time passcode."""
    await auth_service.login_user(db, notifier, body.email, body.password)
    return MessageResponse(message="OTP sent to your email. Please verify.")


@router.post("/verify-otp", response_model=OtpVerifiedResponse)
async def verify_otp(
    body: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> OtpVerifiedResponse:
    """Consume the OTP and issue a 1-hour session token."""
    token, user = await auth_service.verify_otp(db, body.email, body.otp)
    return OtpVerifiedResponse(token=token, user=auth_service.user_view(user))


@router.get("/profile", response_model=ProfileResponse)
async def read_profile(
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Return the sanitized profile of the authenticated user."""
    return ProfileResponse(user=auth_service.user_view(current_user))


@router.delete("/delete-account", response_model=MessageResponse)
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ProfileImageStore = Depends(get_image_store),
) -> MessageResponse:
    """Delete the authenticated user's account and profile image."""
    await auth_service.delete_account(db, store, current_user.id)
    return MessageResponse(message="Account deleted successfully")
