"""
Email verification code repository.
"""

from datetime import datetime

from sqlalchemy import delete, select, update

from rest_api.models.verification import EmailVerification
from shared.infrastructure.db import safe_commit

from .base import BaseRepository


class VerificationRepository(BaseRepository[EmailVerification]):
    model = EmailVerification

    def replace_for_email(self, record: EmailVerification) -> EmailVerification:
        """Delete every previous code for the address and store the new one in one transaction."""
        with self._session() as db:
            db.execute(delete(EmailVerification).where(EmailVerification.email == record.email))
            db.add(record)
            safe_commit(db)
            db.refresh(record)
            return record

    def find_latest(self, email: str, purpose: str) -> EmailVerification | None:
        query = (
            select(EmailVerification)
            .where(EmailVerification.email == email, EmailVerification.purpose == purpose)
            .order_by(EmailVerification.created_at.desc(), EmailVerification.id.desc())
            .limit(1)
        )
        with self._session() as db:
            return db.scalar(query)

    def mark_used(self, record_id: int) -> bool:
        """
        Flip is_used only if it is still false.

        Returns False when another request consumed the code first.
        """
        with self._session() as db:
            result = db.execute(
                update(EmailVerification)
                .where(EmailVerification.id == record_id, EmailVerification.is_used.is_(False))
                .values(is_used=True)
            )
            safe_commit(db)
            return result.rowcount == 1

    def record_failed_attempt(self, record_id: int, max_attempts: int) -> bool:
        """
        Count one wrong guess against a code and burn it (is_used) once
        max_attempts is reached. Returns True when the code is burned.
        """
        with self._session() as db:
            db.execute(
                update(EmailVerification)
                .where(EmailVerification.id == record_id)
                .values(failed_attempts=EmailVerification.failed_attempts + 1)
            )
            db.execute(
                update(EmailVerification)
                .where(
                    EmailVerification.id == record_id,
                    EmailVerification.failed_attempts >= max_attempts,
                )
                .values(is_used=True)
            )
            safe_commit(db)
            return bool(db.scalar(select(EmailVerification.is_used).where(EmailVerification.id == record_id)))

    def delete_expired(self, now: datetime) -> int:
        with self._session() as db:
            result = db.execute(delete(EmailVerification).where(EmailVerification.expires_at < now))
            safe_commit(db)
            return result.rowcount
