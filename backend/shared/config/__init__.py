"""
Configuration: settings, logging and shared constants.
"""

from shared.config.constants import (
    ADMIN_ROLES,
    COMMITTEE_ROLES,
    STUDENT_ROLES,
    AccountStatus,
    ErrorCode,
    Limits,
    Roles,
    TokenKind,
)
from shared.config.logging import get_logger, setup_logging
from shared.config.settings import Settings, settings

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
    "Roles",
    "AccountStatus",
    "TokenKind",
    "ErrorCode",
    "Limits",
    "ADMIN_ROLES",
    "COMMITTEE_ROLES",
    "STUDENT_ROLES",
]
