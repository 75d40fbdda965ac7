"""
One-time email verification codes.

A code is 6 random digits, valid for a limited time and usable once.
Issuing a new code for an address deletes every earlier code for it.
"""

from __future__ import annotations

import hmac
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Callable

from rest_api.models.base import as_utc
from rest_api.models.verification import EmailVerification
from rest_api.repositories.verification import VerificationRepository
from rest_api.services.notifications import CodeDeliveryError, CodeSender
from shared.config.constants import CodePurpose, ErrorMessages, Limits
from shared.config.logging import get_logger, mask_email
from shared.utils.exceptions import ServiceUnavailableError, ValidationError

logger = get_logger(__name__)


def generate_code(length: int = Limits.VERIFICATION_CODE_LENGTH) -> str:
    """Random decimal code from the OS CSPRNG."""
    if length <= 0:
        raise ValueError("code length must be positive")
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


class VerificationService:
    def __init__(
        self,
        repository: VerificationRepository,
        sender: CodeSender,
        ttl_minutes: int = 10,
        clock: Callable[[], float] = time.time,
        max_attempts: int = Limits.MAX_CODE_ATTEMPTS,
    ):
        self._repository = repository
        self._sender = sender
        self._ttl_minutes = ttl_minutes
        self._max_attempts = max_attempts
        self._clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def send_code(self, email: str, purpose: str) -> datetime:
        """
        Issue and deliver a fresh code. Returns its expiry.

        Raises:
            ValidationError: unknown purpose.
            ServiceUnavailableError: the mail system refused the message.
        """
        if purpose not in CodePurpose.ALL:
            raise ValidationError(f"Unknown verification purpose '{purpose}'")

        email = email.strip().lower()
        now = self._now()
        record = EmailVerification(
            email=email,
            code=generate_code(),
            purpose=purpose,
            is_used=False,
            expires_at=now + timedelta(minutes=self._ttl_minutes),
            created_at=now,
        )
        record = self._repository.replace_for_email(record)

        try:
            self._sender.send_code(email, record.code, purpose, self._ttl_minutes)
        except CodeDeliveryError:
            raise ServiceUnavailableError("email", detail="Could not send verification code, try again later")

        logger.info("Verification code issued", email=mask_email(email), purpose=purpose)
        return as_utc(record.expires_at)

    def consume_code(self, email: str, code: str, purpose: str) -> None:
        """
        Check a code and mark it used.

        Checks run in this order: exists, matches, unused, unexpired.
        Marking used is a conditional update, so two concurrent requests
        with the same code cannot both succeed. Every wrong guess is counted
        and the code is burned after Limits.MAX_CODE_ATTEMPTS of them.
        """
        email = email.strip().lower()
        record = self._repository.find_latest(email, purpose)
        if record is None:
            raise ValidationError(ErrorMessages.CODE_NOT_FOUND, email=mask_email(email), purpose=purpose)

        if not hmac.compare_digest(record.code, code or ""):
            if not record.is_used and self._repository.record_failed_attempt(record.id, self._max_attempts):
                logger.warning("Verification code burned after repeated guesses", email=mask_email(email), purpose=purpose)
                raise ValidationError(ErrorMessages.CODE_ATTEMPTS_EXCEEDED, email=mask_email(email), purpose=purpose)
            raise ValidationError(ErrorMessages.CODE_MISMATCH, email=mask_email(email), purpose=purpose)

        if record.is_used:
            raise ValidationError(ErrorMessages.CODE_USED, email=mask_email(email), purpose=purpose)

        if self._now() > as_utc(record.expires_at):
            raise ValidationError(ErrorMessages.CODE_EXPIRED, email=mask_email(email), purpose=purpose)

        if not self._repository.mark_used(record.id):
            raise ValidationError(ErrorMessages.CODE_USED, email=mask_email(email), purpose=purpose)

    def purge_expired(self) -> int:
        removed = self._repository.delete_expired(self._now())
        if removed:
            logger.info("Expired verification codes removed", count=removed)
        return removed
