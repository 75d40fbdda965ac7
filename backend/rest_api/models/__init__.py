"""
SQLAlchemy ORM Models Package.

- base: Base class and TimestampMixin
- user: User
- login_log: LoginLog
- verification: EmailVerification
"""

from .base import Base, TimestampMixin
from .user import User
from .login_log import LoginLog
from .verification import EmailVerification

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "LoginLog",
    "EmailVerification",
]
