"""Pydantic schemas for the login → OTP → session exchange."""

from __future__ import annotations

from pydantic import BaseModel

from otp_auth.schemas.user import UserRead


class LoginRequest(BaseModel):
    email: str
    password: str


class VerifyOtpRequest(BaseModel):
    email: str
    otp: str


class MessageResponse(BaseModel):
    message: str


class OtpVerifiedResponse(BaseModel):
    token: str
    user: UserRead
    message: str = "OTP verified and logged in successfully!"


class TokenPayload(BaseModel):
    sub: str
    type: str
    exp: int | None = None
