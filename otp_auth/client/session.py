"""
Client-side session manager.

The one place on the client that knows whether a session exists and the
only writer of the persisted token/user pair. Owned by the application
root and handed to whatever needs it; there is no module-level instance.

Transitions::

    bootstrap      stored token+user parse → authenticated, else anonymous
    login          server sends OTP → navigate to /verify-otp (still anonymous)
    verify_otp     token issued → persist, authenticated, navigate to /dashboard
    register       account created → navigate to /login (still anonymous)
    logout         clear everything → anonymous, navigate to /login
    delete_account server deleted → logout; on failure the session is kept
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from otp_auth.client.forms import (
    FormValidationError,
    validate_login_form,
    validate_otp_form,
    validate_registration_form,
)
from otp_auth.client.storage import TOKEN_KEY, USER_KEY, FileStorage, MemoryStorage

logger = logging.getLogger(__name__)


class AuthState(BaseModel):
    user: dict[str, Any] | None = None
    token: str | None = None
    is_authenticated: bool = False
    loading: bool = True
    # Server-reported failure
    error: str | None = None
    # Locally detected validation failure
    form_error: str | None = None


class AuthRequestError(Exception):
    """A call to the auth API failed; ``message`` is safe to show verbatim."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionBusyError(RuntimeError):
    """An operation was started while another one is still in flight."""


class SessionManager:
    def __init__(
        self,
        api: httpx.AsyncClient,
        storage: MemoryStorage | FileStorage,
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.api = api
        self.storage = storage
        self._navigate = navigate or (lambda path: logger.debug("navigate → %s", path))
        self.state = AuthState()

    # ── State plumbing ──────────────────────────────────────────────
    def _set(self, **changes: Any) -> None:
        self.state = self.state.model_copy(update=changes)

    @contextmanager
    def _in_flight(self) -> Iterator[None]:
        """Hold ``loading`` for one call; released however the call ends."""
        if self.state.loading:
            raise SessionBusyError("Another request is already in progress")
        self._set(loading=True, error=None, form_error=None)
        try:
            yield
        finally:
            if self.state.loading:
                self._set(loading=False)

    def _fail(self, exc: AuthRequestError) -> None:
        self._set(loading=False, error=exc.message)

    def _reject_form(self, exc: FormValidationError) -> None:
        self._set(form_error=str(exc))

    def _clear_storage(self) -> None:
        self.storage.remove_item(TOKEN_KEY)
        self.storage.remove_item(USER_KEY)

    async def _request(self, method: str, url: str, fallback: str, **kwargs: Any) -> dict:
        try:
            response = await self.api.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise AuthRequestError(fallback) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = body.get("detail") if isinstance(body, dict) else None
            raise AuthRequestError(
                message if isinstance(message, str) and message else fallback,
                status_code=response.status_code,
            )
        return body if isinstance(body, dict) else {}

    # ── Transitions ─────────────────────────────────────────────────
    def bootstrap(self) -> AuthState:
        """Restore a persisted session without asking the server."""
        token = self.storage.get_item(TOKEN_KEY)
        raw_user = self.storage.get_item(USER_KEY)
        if not (token and raw_user):
            self._set(loading=False)
            return self.state

        try:
            user = json.loads(raw_user)
            if not isinstance(user, dict):
                raise ValueError("stored user is not an object")
        except ValueError as exc:
            logger.warning("Failed to parse stored user, clearing session: %s", exc)
            self._clear_storage()
            self.state = AuthState(loading=False)
            return self.state

        self.state = AuthState(user=user, token=token, is_authenticated=True, loading=False)
        return self.state

    async def login(self, email: str, password: str) -> dict:
        """Ask the server to email an OTP, then go to the OTP page."""
        try:
            validate_login_form(email, password)
        except FormValidationError as exc:
            self._reject_form(exc)
            raise

        with self._in_flight():
            try:
                data = await self._request(
                    "POST", "/auth/login", "Login failed. Please try again.",
                    json={"email": email, "password": password},
                )
            except AuthRequestError as exc:
                self._fail(exc)
                raise
        self._navigate(f"/verify-otp?{urlencode({'email': email})}")
        return data

    async def verify_otp(self, email: str, otp: str) -> dict:
        try:
            validate_otp_form(email, otp)
        except FormValidationError as exc:
            self._reject_form(exc)
            raise

        with self._in_flight():
            try:
                data = await self._request(
                    "POST", "/auth/verify-otp", "OTP verification failed. Please try again.",
                    json={"email": email, "otp": otp},
                )
            except AuthRequestError as exc:
                self._fail(exc)
                raise

            token, user = data.get("token"), data.get("user")
            if not token or not isinstance(user, dict):
                exc = AuthRequestError("OTP verification failed. Please try again.")
                self._fail(exc)
                raise exc

            self.storage.set_item(TOKEN_KEY, token)
            self.storage.set_item(USER_KEY, json.dumps(user))
            self.state = AuthState(user=user, token=token, is_authenticated=True, loading=False)
        self._navigate("/dashboard")
        return data

    async def register(
        self,
        payload: dict,
        image: tuple[str, bytes, str] | None = None,
    ) -> dict:
        """Create an account; authentication state is left untouched."""
        try:
            validate_registration_form(payload, image)
        except FormValidationError as exc:
            self._reject_form(exc)
            raise

        fields = {k: str(v) for k, v in payload.items() if v is not None and v != ""}
        files = {"profileImage": image} if image is not None else None
        with self._in_flight():
            try:
                data = await self._request(
                    "POST", "/auth/register", "Registration failed. Please try again.",
                    data=fields, files=files,
                )
            except AuthRequestError as exc:
                self._fail(exc)
                raise
        self._navigate("/login")
        return data

    def logout(self) -> None:
        self._clear_storage()
        self.state = AuthState(loading=False)
        self._navigate("/login")

    async def delete_account(self) -> dict:
        with self._in_flight():
            try:
                data = await self._request(
                    "DELETE", "/auth/delete-account", "Failed to delete account."
                )
            except AuthRequestError as exc:
                self._fail(exc)
                raise
        self.logout()
        return data

    def require_auth(self) -> bool:
        """Guard for protected pages: redirect to /login when anonymous."""
        if not self.state.loading and not self.state.is_authenticated:
            self._navigate("/login")
            return False
        return self.state.is_authenticated
