"""
OTP delivery by email.

The SMTP exchange is blocking, so it runs in a worker thread with a socket
timeout and a bounded number of attempts. Any final failure surfaces as
:class:`NotifierError`; callers decide how to report it.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from starlette.concurrency import run_in_threadpool

from otp_auth.core.config import settings

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your OTP for Authentication System Login"


class NotifierError(Exception):
    """Email could not be delivered."""


def render_otp_email(otp: str) -> tuple[str, str]:
    """Return ``(plain_text, html)`` bodies for an OTP message."""
    minutes = settings.OTP_EXPIRE_MINUTES
    text = (
        f"Hello!\n\nYour One-Time Password (OTP) is: {otp}\n"
        f"This OTP is valid for {minutes} minutes.\n"
        "If you did not request this, please ignore this email.\n"
    )
    html = f"""
      <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <h2>Hello!</h2>
        <p>Your One-Time Password (OTP) for logging in is:</p>
        <p style="font-size: 24px; font-weight: bold; color: #007bff;">{otp}</p>
        <p>This OTP is valid for {minutes} minutes.</p>
        <p>If you did not request this, please ignore this email.</p>
      </div>
    """
    return text, html


class SmtpNotifier:
    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        user: str | None = settings.SMTP_USER,
        password: str | None = settings.SMTP_PASSWORD,
        use_tls: bool = settings.SMTP_USE_TLS,
        timeout: float = settings.SMTP_TIMEOUT_SECONDS,
        max_attempts: int = settings.SMTP_MAX_ATTEMPTS,
        sender: str = settings.EMAIL_FROM,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.sender = sender

    def _build_message(self, to_email: str, otp: str) -> EmailMessage:
        text, html = render_otp_email(otp)
        msg = EmailMessage()
        msg["Subject"] = OTP_SUBJECT
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password or "")
            server.send_message(msg)

    async def send_otp(self, to_email: str, otp: str) -> None:
        msg = self._build_message(to_email, otp)
        last_exc: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                await run_in_threadpool(self._send_blocking, msg)
            except (smtplib.SMTPException, OSError) as exc:
                last_exc = exc
                logger.warning(
                    "OTP email to %s failed (attempt %d/%d): %s",
                    to_email, attempt, self.max_attempts, exc,
                )
                continue
            logger.info("OTP email sent to %s", to_email)
            return
        raise NotifierError(f"Failed to send OTP email to {to_email}") from last_exc


class ConsoleNotifier:
    """Development backend: writes the code to the log instead of mailing it."""

    async def send_otp(self, to_email: str, otp: str) -> None:
        logger.warning("[console email] OTP for %s is %s", to_email, otp)


def get_notifier() -> SmtpNotifier | ConsoleNotifier:
    """FastAPI dependency: the configured email backend."""
    if settings.EMAIL_BACKEND == "console":
        return ConsoleNotifier()
    return SmtpNotifier()
