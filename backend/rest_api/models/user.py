"""
User and Authentication Models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import AccountStatus, Roles

from .base import BigIntPK, TimestampMixin, Base


class User(TimestampMixin, Base):
    """
    A platform account (student, committee member or administrator).

    Accounts are never physically deleted; deactivation and bans are status changes.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    real_name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Roles.STUDENT)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AccountStatus.ACTIVE)
    major: Mapped[Optional[str]] = mapped_column(String(100))
    class_name: Mapped[Optional[str]] = mapped_column("class", String(50))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    avatar: Mapped[Optional[str]] = mapped_column(String(500))
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_user_role_status", "role", "status"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}', status='{self.status}')>"
