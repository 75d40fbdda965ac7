"""
Login log: one row per login attempt, written by the login audit worker.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BigIntPK, TimestampMixin, Base


class LoginLog(TimestampMixin, Base):
    """Login attempt record. user_id is NULL when the identifier did not resolve."""

    __tablename__ = "login_log"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id"), nullable=True, index=True
    )
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False, default="password")
    reason: Mapped[Optional[str]] = mapped_column(String(100))

    __table_args__ = (
        Index("ix_login_log_created_at", "created_at"),
    )
