"""
Repository Pattern implementation.
Centralizes data access behind small, session-owning classes.

Usage:
    from rest_api.repositories import UserRepository

    repo = UserRepository(session_factory)
    user = repo.find_by_identifier("alice")
"""

from .base import BaseRepository, RepositoryFilters
from .user import UserRepository, UserFilters
from .verification import VerificationRepository
from .login_log import LoginLogRepository

__all__ = [
    # Base
    "BaseRepository",
    "RepositoryFilters",
    # User
    "UserRepository",
    "UserFilters",
    # Verification codes
    "VerificationRepository",
    # Login log
    "LoginLogRepository",
]
