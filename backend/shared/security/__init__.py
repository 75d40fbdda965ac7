"""
Security module: password hashing, token codec, revocation, rate limiting, access gate.
"""

from shared.security.password import (
    hash_password,
    verify_password,
    needs_rehash,
    PasswordTooShortError,
)
from shared.security.tokens import (
    TokenCodec,
    TokenClaims,
    TokenPair,
    TokenValidationError,
    ExpiredTokenError,
    MalformedTokenError,
    WrongTokenKindError,
)
from shared.security.token_blacklist import TokenRevocationStore
from shared.security.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    LoginAttemptLimiter,
    RateLimitDecision,
)
from shared.security.auth import (
    AccessGate,
    Identity,
    get_bearer_token,
    current_identity,
    optional_identity,
    require_roles,
    require_admin,
    require_committee,
    require_student,
)
from shared.security.audit_log import LoginAuditDispatcher, LoginObservation

__all__ = [
    # password
    "hash_password",
    "verify_password",
    "needs_rehash",
    "PasswordTooShortError",
    # tokens
    "TokenCodec",
    "TokenClaims",
    "TokenPair",
    "TokenValidationError",
    "ExpiredTokenError",
    "MalformedTokenError",
    "WrongTokenKindError",
    # revocation
    "TokenRevocationStore",
    # rate_limit
    "limiter",
    "rate_limit_exceeded_handler",
    "LoginAttemptLimiter",
    "RateLimitDecision",
    # gate
    "AccessGate",
    "Identity",
    "get_bearer_token",
    "current_identity",
    "optional_identity",
    "require_roles",
    "require_admin",
    "require_committee",
    "require_student",
    # audit
    "LoginAuditDispatcher",
    "LoginObservation",
]
