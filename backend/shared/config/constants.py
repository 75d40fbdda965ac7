"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import Roles, COMMITTEE_ROLES, AccountStatus

    if role in COMMITTEE_ROLES:
        ...

    if user.status == AccountStatus.BANNED:
        ...
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants."""

    STUDENT: Final[str] = "student"
    COMMITTEE: Final[str] = "committee"  # Study committee members
    ADMIN: Final[str] = "admin"

    ALL: Final[list[str]] = [STUDENT, COMMITTEE, ADMIN]


# Role groups for common access patterns
ADMIN_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN})
COMMITTEE_ROLES: Final[frozenset[str]] = frozenset({Roles.COMMITTEE, Roles.ADMIN})
STUDENT_ROLES: Final[frozenset[str]] = frozenset({Roles.STUDENT, Roles.COMMITTEE, Roles.ADMIN})


# =============================================================================
# Entity Status Constants
# =============================================================================


class AccountStatus:
    """User account status constants."""

    ACTIVE: Final[str] = "active"
    INACTIVE: Final[str] = "inactive"
    BANNED: Final[str] = "banned"

    ALL: Final[list[str]] = [ACTIVE, INACTIVE, BANNED]


class TokenKind:
    """JWT token type claim values."""

    ACCESS: Final[str] = "access"
    REFRESH: Final[str] = "refresh"


class CodePurpose:
    """Purposes an emailed one-time code can be issued for."""

    REGISTER: Final[str] = "register"
    LOGIN: Final[str] = "login"
    RESET_PASSWORD: Final[str] = "reset_password"

    ALL: Final[list[str]] = [REGISTER, LOGIN, RESET_PASSWORD]


# =============================================================================
# Response Codes
# =============================================================================


class ErrorCode:
    """Stable numeric codes returned in every error body."""

    SUCCESS: Final[int] = 0

    # Generic
    INVALID_PARAMS: Final[int] = 10001
    UNAUTHORIZED: Final[int] = 10002
    FORBIDDEN: Final[int] = 10003
    NOT_FOUND: Final[int] = 10004
    SERVER_ERROR: Final[int] = 10005
    DUPLICATE: Final[int] = 10006

    # Auth
    INVALID_CREDENTIALS: Final[int] = 10101
    USER_DISABLED: Final[int] = 10102
    WRONG_PASSWORD: Final[int] = 10103
    INVALID_TOKEN: Final[int] = 10104
    USER_EXISTS: Final[int] = 10105
    USER_INACTIVE: Final[int] = 10106
    TOO_MANY_ATTEMPTS: Final[int] = 10107


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MIN_PASSWORD_LENGTH: Final[int] = 6
    MAX_PASSWORD_LENGTH: Final[int] = 50

    MIN_USERNAME_LENGTH: Final[int] = 3
    MAX_USERNAME_LENGTH: Final[int] = 50

    MIN_REAL_NAME_LENGTH: Final[int] = 2
    MAX_REAL_NAME_LENGTH: Final[int] = 50

    VERIFICATION_CODE_LENGTH: Final[int] = 6
    MAX_CODE_ATTEMPTS: Final[int] = 5  # Wrong guesses before a code is burned

    # Pagination defaults
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200


# =============================================================================
# Messages
# =============================================================================


class ErrorMessages:
    """Standardized error messages."""

    # Gate
    NO_TOKEN: Final[str] = "No token provided"
    BAD_AUTH_HEADER: Final[str] = "Authorization header must be 'Bearer <token>'"
    TOKEN_EXPIRED: Final[str] = "Token has expired"
    TOKEN_WRONG_TYPE: Final[str] = "Token type is wrong"
    INVALID_TOKEN: Final[str] = "Invalid token"
    TOKEN_REVOKED: Final[str] = "Token has been revoked"
    INSUFFICIENT_PERMISSIONS: Final[str] = "Insufficient permissions"

    # Credentials
    INVALID_CREDENTIALS: Final[str] = "Invalid username or password"
    USER_DISABLED: Final[str] = "Account has been disabled"
    USER_INACTIVE: Final[str] = "Account is not active"
    WRONG_PASSWORD: Final[str] = "Current password is incorrect"
    USER_EXISTS: Final[str] = "Username or email already registered"

    # Verification codes
    CODE_NOT_FOUND: Final[str] = "Verification code not found"
    CODE_MISMATCH: Final[str] = "Verification code is incorrect"
    CODE_USED: Final[str] = "Verification code has already been used"
    CODE_EXPIRED: Final[str] = "Verification code has expired"
    CODE_ATTEMPTS_EXCEEDED: Final[str] = "Too many incorrect codes, request a new one"

    STORE_UNAVAILABLE: Final[str] = "Authentication service temporarily unavailable"


def validate_role(role: str) -> bool:
    """Validate that a role is known."""
    return role in Roles.ALL


def validate_account_status(status: str) -> bool:
    """Validate that an account status is known."""
    return status in AccountStatus.ALL
