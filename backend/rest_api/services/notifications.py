"""
Verification code delivery.

CodeSender is the seam between the verification service and whatever
actually reaches the user's inbox:
- SmtpCodeSender: plain-text mail over SMTP.
- LoggingCodeSender: development fallback when no SMTP host is configured.
"""

from __future__ import annotations

import smtplib
import ssl
from collections import deque
from email.mime.text import MIMEText
from typing import Protocol

from shared.config.logging import get_logger, mask_email

logger = get_logger(__name__)

SUBJECTS = {
    "register": "Your StudyHub registration code",
    "login": "Your StudyHub login code",
    "reset_password": "Your StudyHub password reset code",
}


class CodeDeliveryError(Exception):
    """The code could not be handed to the mail system."""


class CodeSender(Protocol):
    def send_code(self, email: str, code: str, purpose: str, ttl_minutes: int) -> None: ...


def _render_text(code: str, ttl_minutes: int) -> str:
    return (
        f"Your verification code is {code}.\n"
        f"It expires in {ttl_minutes} minutes and can be used once.\n"
        "If you did not request it, ignore this message."
    )


class LoggingCodeSender:
    """
    Log-only delivery for development.

    The code itself is only logged outside production.
    """

    def __init__(self, environment: str = "development"):
        self._environment = environment
        # Recent deliveries, newest last
        self.sent: deque[tuple[str, str, str]] = deque(maxlen=100)

    def send_code(self, email: str, code: str, purpose: str, ttl_minutes: int) -> None:
        self.sent.append((email, code, purpose))
        if self._environment == "production":
            logger.warning("No SMTP host configured, verification code not delivered", to=mask_email(email))
            return
        logger.info("Verification code (dev delivery)", to=mask_email(email), purpose=purpose, code=code)


class SmtpCodeSender:
    """Send codes as plain-text mail over SMTP with STARTTLS or implicit TLS."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        use_tls: bool = True,
        from_email: str = "",
        timeout: float = 30,
    ):
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._use_tls = use_tls
        self._from = from_email or user
        self._timeout = timeout

    def send_code(self, email: str, code: str, purpose: str, ttl_minutes: int) -> None:
        msg = MIMEText(_render_text(code, ttl_minutes), "plain", "utf-8")
        msg["Subject"] = SUBJECTS.get(purpose, "Your StudyHub verification code")
        msg["From"] = self._from
        msg["To"] = email

        context = ssl.create_default_context()
        try:
            if self._use_tls:
                with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                    server.starttls(context=context)
                    if self._user and self._password:
                        server.login(self._user, self._password)
                    server.sendmail(self._from, [email], msg.as_string())
            else:
                with smtplib.SMTP_SSL(self._host, self._port, context=context, timeout=self._timeout) as server:
                    if self._user and self._password:
                        server.login(self._user, self._password)
                    server.sendmail(self._from, [email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Verification email failed", to=mask_email(email), error=str(e))
            raise CodeDeliveryError(str(e)) from e

        logger.info("Verification email sent", to=mask_email(email), purpose=purpose)
