"""Pydantic schemas for User registration and the sanitized user view."""

from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from otp_auth.core.config import settings

EMAIL_PATTERN = re.compile(r".+@.+\..+")


class UserCreate(BaseModel):
    name: str = Field(max_length=200)
    email: str = Field(max_length=320)
    password: str
    company: str | None = Field(default=None, max_length=200)
    age: int | None = Field(default=None, ge=0, le=150)
    dob: date | None = None

    @field_validator("company", "age", "dob", mode="before")
    @classmethod
    def _blank_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name")
    @classmethod
    def _require_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def _validate_email(cls, v: str) -> str:
        # Case is preserved: lookups compare emails exactly.
        v = v.strip()
        if not EMAIL_PATTERN.fullmatch(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        if len(v) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
            )
        return v


class UserRead(BaseModel):
    """Sanitized projection: never carries the password hash or OTP fields."""

    id: str
    name: str
    email: str
    profile_image: str | None = None
    company: str | None = None
    age: int | None = None
    dob: date | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProfileResponse(BaseModel):
    user: UserRead
