"""Outbound email delivery.

The identity service depends on the ``Mailer`` protocol; ``SmtpMailer`` sends
through aiosmtplib and ``NullMailer`` only logs. Send failures raise
``UpstreamFailure`` so callers decide whether to swallow them.
"""

from __future__ import annotations

import hashlib
import logging
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from student_system.domain.exceptions import UpstreamFailure
from student_system.settings import settings

logger = logging.getLogger(__name__)

_BRAND = "Student System"


def mask_email(email: str) -> str:
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()[:12]


class Mailer(Protocol):
    async def send_verification(self, email: str, name: str, link: str) -> None: ...

    async def send_welcome(self, email: str, name: str) -> None: ...


def _verification_body(name: str, link: str) -> str:
    return f"""
    <html>
        <body>
            <h2>Welcome, {name}!</h2>
            <p>Thank you for registering with {_BRAND}. Please verify your email address:</p>
            <p><a href="{link}">Verify Email Address</a></p>
            <p>This link expires in {settings.email_verify_ttl_hours} hours.
            If you didn't create an account, please ignore this email.</p>
        </body>
    </html>
    """


def _welcome_body(name: str) -> str:
    return f"""
    <html>
        <body>
            <h2>Welcome to {_BRAND}, {name}!</h2>
            <p>Your email address has been verified. You now have full access to your dashboard.</p>
        </body>
    </html>
    """


class SmtpMailer:
    """Send mail using the configured SMTP relay."""

    async def _send(self, to_email: str, subject: str, body_html: str) -> None:
        msg = EmailMessage()
        msg["From"] = f"{_BRAND} <{settings.smtp_from_email}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body_html, subtype="html")
        # STARTTLS on 587, implicit TLS on 465.
        start_tls = bool(settings.smtp_tls) and int(settings.smtp_port) == 587
        use_tls = bool(settings.smtp_tls) and int(settings.smtp_port) == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_user,
                password=settings.smtp_password,
                start_tls=start_tls,
                use_tls=use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise UpstreamFailure("mailer", "send", str(exc)) from exc
        logger.info("email_sent", extra={"to_hash": mask_email(to_email), "subject": subject})

    async def send_verification(self, email: str, name: str, link: str) -> None:
        await self._send(email, f"Verify Your Email - {_BRAND}", _verification_body(name, link))

    async def send_welcome(self, email: str, name: str) -> None:
        await self._send(email, f"Welcome to {_BRAND}", _welcome_body(name))


class NullMailer:
    """Mailer used when SMTP is not configured; only logs."""

    async def send_verification(self, email: str, name: str, link: str) -> None:
        logger.info("email_skipped", extra={"to_hash": mask_email(email), "kind": "verification"})

    async def send_welcome(self, email: str, name: str) -> None:
        logger.info("email_skipped", extra={"to_hash": mask_email(email), "kind": "welcome"})


def default_mailer() -> Mailer:
    if settings.smtp_host == "localhost" and not settings.is_dev():
        return NullMailer()
    return SmtpMailer()
