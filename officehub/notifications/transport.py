"""
Mail transport

SMTP delivery for notification emails.  ``smtplib`` is blocking, so every
network call runs in the threadpool.
"""

from __future__ import annotations

import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Any, Protocol

from fastapi.concurrency import run_in_threadpool

from officehub.config import SMTP_FROM_NAME, SMTP_HOST, SMTP_PORT, SMTP_TIMEOUT_SECONDS
from officehub.observability.logging import get_logger
from officehub.utils.html import html_to_text

logger = get_logger(__name__)


class MailDeliveryError(RuntimeError):
    def __init__(self, message: str, recipient: str | None = None):
        super().__init__(message)
        self.recipient = recipient


class MailTransport(Protocol):
    async def send(self, to: str, subject: str, html: str) -> bool:
        """
        Deliver one message.

        Returns:
            True when handed to the mail server, False when the transport
            skipped it because it is not configured

        Raises:
            MailDeliveryError: The server rejected the message or was unreachable
        """
        ...

    @property
    def configured(self) -> bool: ...

    async def verify(self) -> bool:
        """Check credentials/connectivity without sending anything."""
        ...


class SMTPTransport:
    """Sends mail through an authenticated SMTP server (STARTTLS)."""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        timeout: float = SMTP_TIMEOUT_SECONDS,
    ):
        """
        Environment variables (if params not provided):
        - SMTP_USER: SMTP username
        - SMTP_PASSWORD: SMTP password (app password for Gmail)
        - SMTP_FROM_EMAIL: From address (default: SMTP_USER)
        Host, port and from name come from officehub.config.
        """
        self.smtp_host = smtp_host or SMTP_HOST
        self.smtp_port = smtp_port or SMTP_PORT
        self.smtp_user = smtp_user or os.getenv("SMTP_USER")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD")
        self.from_email = from_email or os.getenv("SMTP_FROM_EMAIL") or self.smtp_user
        self.from_name = from_name or SMTP_FROM_NAME
        self.timeout = timeout

        if self.configured:
            logger.info(
                "SMTP delivery configured: %s@%s:%s",
                self.smtp_user,
                self.smtp_host,
                self.smtp_port,
            )
        else:
            logger.warning("SMTP not configured. Set SMTP_USER and SMTP_PASSWORD.")

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self.configured:
            logger.warning("Email service not configured. Skipping email to %s", to)
            return False

        message = self._build_message(to, subject, html)
        await run_in_threadpool(self._deliver, to, message)
        return True

    async def verify(self) -> bool:
        """Log in to the server without sending anything."""
        if not self.configured:
            logger.warning("Email service not configured")
            return False

        try:
            await run_in_threadpool(self._login_only)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email service verification failed: %s", e)
            return False

        logger.info("Email service is ready")
        return True

    def _build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name, self.from_email or ""))
        msg["To"] = to
        msg["Date"] = formatdate(localtime=True)

        # Plaintext first so clients prefer the HTML part
        msg.attach(MIMEText(html_to_text(html), "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        assert self.smtp_user is not None
        assert self.smtp_password is not None
        server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout)
        try:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
        except BaseException:
            server.close()
            raise
        return server

    def _login_only(self) -> None:
        with self._connect():
            pass

    def _deliver(self, to: str, message: MIMEMultipart) -> None:
        try:
            with self._connect() as server:
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"SMTP delivery to {to} failed: {e}", recipient=to) from e

    def get_config_status(self) -> dict[str, Any]:
        return {
            "enabled": self.configured,
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "smtp_user": self.smtp_user,
            "smtp_password_set": bool(self.smtp_password),
            "from_email": self.from_email,
            "from_name": self.from_name,
        }
