"""
Fixed-window rate limiter keyed by client IP (slowapi).

The limit is an application limit checked by ``SlowAPIASGIMiddleware``
before routing, so requests the auth gate or body parsing would reject
still count. Every limited route shares one window per IP.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from otp_auth.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    strategy="fixed-window",
    application_limits=[settings.RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
