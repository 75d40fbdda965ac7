"""
One-time email verification codes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BigIntPK, TimestampMixin, Base


class EmailVerification(TimestampMixin, Base):
    """
    A 6-digit code sent to an email address for one purpose.

    Issuing a new code deletes the previous ones for that email, so at most
    one live code exists per address. Wrong guesses are counted; enough of
    them burn the code.
    """

    __tablename__ = "email_verification"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[str] = mapped_column(String(20), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_email_verification_email_purpose", "email", "purpose"),
    )
