"""Checks run on the client before a request is sent."""

from __future__ import annotations

import re

EMAIL_PATTERN = re.compile(r".+@.+\..+")
PASSWORD_PATTERN = re.compile(r"^(?=.*\d)(?=.*[a-z])(?=.*[A-Z]).{6,}$")
OTP_PATTERN = re.compile(r"^\d{6}$")

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png")
MAX_IMAGE_BYTES = 2 * 1024 * 1024


class FormValidationError(ValueError):
    """Input rejected locally; never reached the server."""


def validate_login_form(email: str, password: str) -> None:
    if not email or not password:
        raise FormValidationError("Please enter both email and password.")


def validate_otp_form(email: str, otp: str) -> None:
    if not email or not otp:
        raise FormValidationError("Please enter both email and OTP.")
    if not OTP_PATTERN.match(otp):
        raise FormValidationError("OTP must be a 6-digit number.")


def validate_registration_form(
    payload: dict,
    image: tuple[str, bytes, str] | None = None,
) -> None:
    """*image* is ``(filename, content, content_type)``."""
    if not payload.get("name") or not payload.get("email") or not payload.get("password"):
        raise FormValidationError("Please fill in all required fields (Name, Email, Password).")
    if not EMAIL_PATTERN.search(payload["email"]):
        raise FormValidationError("Please enter a valid email address.")
    if not PASSWORD_PATTERN.match(payload["password"]):
        raise FormValidationError(
            "Password must be at least 6 characters long and contain at least "
            "one digit, one lowercase, and one uppercase letter."
        )
    if image is not None:
        _filename, content, content_type = image
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise FormValidationError("Only PNG and JPG/JPEG image formats are allowed.")
        if len(content) > MAX_IMAGE_BYTES:
            raise FormValidationError("Profile image size cannot exceed 2MB.")
