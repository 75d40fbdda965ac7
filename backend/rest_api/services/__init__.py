"""
Services module for business logic.

- auth_service: registration, login, refresh, logout, password changes
- user_service: profiles, account administration, login log queries
- verification_service: one-time email codes
- notifications: code delivery (SMTP or log-only)

Usage:
    from rest_api.services import AuthService

    result = auth_service.login("alice", "secret123", ip="203.0.113.7")
"""

from .auth_service import AuthService, AuthPolicy, LoginResult, ensure_active
from .user_service import UserService
from .verification_service import VerificationService, generate_code
from .notifications import CodeSender, CodeDeliveryError, LoggingCodeSender, SmtpCodeSender

__all__ = [
    # Auth
    "AuthService",
    "AuthPolicy",
    "LoginResult",
    "ensure_active",
    # Users
    "UserService",
    # Verification codes
    "VerificationService",
    "generate_code",
    # Delivery
    "CodeSender",
    "CodeDeliveryError",
    "LoggingCodeSender",
    "SmtpCodeSender",
]
