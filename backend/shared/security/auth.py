"""
Access gate: bearer token authentication and role checks.

Per request, strictly in order:
1. Authorization header present, else Unauthorized.
2. Exactly "Bearer <token>", else Unauthorized.
3. Token validates as an access token. Expired, wrong-kind and invalid get
   distinct messages but share the invalid-token code.
4. Token is not revoked. If the revocation store cannot answer, the request
   is rejected with 503 (fail closed).
5. The resolved Identity is attached to request.state.identity.

Role checks are separate dependencies that only inspect the attached identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from fastapi import Depends, Header, Request

from shared.config.constants import ADMIN_ROLES, COMMITTEE_ROLES, STUDENT_ROLES, ErrorMessages
from shared.config.logging import get_logger, mask_token
from shared.infrastructure.kv_store import StoreUnavailableError
from shared.security.token_blacklist import TokenRevocationStore
from shared.security.tokens import (
    ExpiredTokenError,
    MalformedTokenError,
    TokenClaims,
    TokenCodec,
    WrongTokenKindError,
)
from shared.utils.exceptions import (
    AppException,
    InsufficientRoleError,
    InvalidTokenError,
    ServiceUnavailableError,
    TokenExpiredError,
    TokenRevokedError,
    TokenTypeError,
    UnauthorizedError,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """Who is calling, as resolved from a valid access token."""

    user_id: int
    role: str
    token: str
    claims: TokenClaims


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract bearer token from Authorization header.

    Raises:
        UnauthorizedError: If header is missing or not exactly "Bearer <token>".
    """
    if not authorization:
        raise UnauthorizedError(ErrorMessages.NO_TOKEN)
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError(ErrorMessages.BAD_AUTH_HEADER)
    return parts[1]


class AccessGate:
    """Resolves an Authorization header into an Identity."""

    def __init__(self, codec: TokenCodec, revocations: TokenRevocationStore):
        self._codec = codec
        self._revocations = revocations

    def authenticate(self, authorization: str | None) -> Identity:
        token = get_bearer_token(authorization)

        try:
            claims = self._codec.validate_access(token)
        except ExpiredTokenError:
            raise TokenExpiredError(token_hash=mask_token(token))
        except WrongTokenKindError:
            raise TokenTypeError(token_hash=mask_token(token))
        except MalformedTokenError as e:
            raise InvalidTokenError(token_hash=mask_token(token), reason=str(e))

        try:
            revoked = self._revocations.is_revoked(token) or self._revocations.is_user_revoked(
                claims.user_id, claims.issued_at_ms
            )
        except StoreUnavailableError as e:
            logger.error(
                "Error checking token revocation - denying access for security",
                token_hash=mask_token(token),
                error=str(e),
            )
            raise ServiceUnavailableError("revocation store", retry_after=5)

        if revoked:
            logger.warning("Revoked token used", token_hash=mask_token(token), user_id=claims.user_id)
            raise TokenRevokedError(user_id=claims.user_id)

        return Identity(user_id=claims.user_id, role=claims.role, token=token, claims=claims)

    def authenticate_optional(self, authorization: str | None) -> Identity | None:
        """Same checks, but any failure means "anonymous" instead of an error."""
        if not authorization:
            return None
        try:
            return self.authenticate(authorization)
        except AppException:
            return None


def ensure_role(identity: Identity | None, allowed: Iterable[str]) -> Identity:
    """
    Check an already-resolved identity against a role set. Never re-validates the token.

    Raises:
        UnauthorizedError: no identity was attached.
        InsufficientRoleError: role not in the allowed set.
    """
    if identity is None:
        raise UnauthorizedError()
    allowed = frozenset(allowed)
    if identity.role not in allowed:
        raise InsufficientRoleError(sorted(allowed), user_id=identity.user_id, role=identity.role)
    return identity


# =============================================================================
# FastAPI dependencies
# =============================================================================


def get_access_gate(request: Request) -> AccessGate:
    return request.app.state.access_gate


def current_identity(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Identity:
    """
    FastAPI dependency resolving the caller.

    Usage:
        @router.get("/me")
        def me(identity: Identity = Depends(current_identity)):
            ...
    """
    identity = get_access_gate(request).authenticate(authorization)
    request.state.identity = identity
    return identity


def optional_identity(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Identity | None:
    """Like current_identity, but anonymous callers get None instead of a 401."""
    identity = get_access_gate(request).authenticate_optional(authorization)
    request.state.identity = identity
    return identity


def require_roles(*allowed_roles: str) -> Callable[..., Identity]:
    """
    Build a dependency that admits only the given roles.

    Usage:
        @router.get("/admin/users")
        def list_users(identity: Identity = Depends(require_roles("admin"))):
            ...
    """
    allowed = frozenset(allowed_roles)

    def role_gate(identity: Identity = Depends(current_identity)) -> Identity:
        return ensure_role(identity, allowed)

    return role_gate


require_admin = require_roles(*ADMIN_ROLES)
require_committee = require_roles(*COMMITTEE_ROLES)
require_student = require_roles(*STUDENT_ROLES)
