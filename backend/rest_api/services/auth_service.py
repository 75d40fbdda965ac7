"""
Auth orchestration: registration, login, refresh, logout, password changes.

Flows:
    login (password)   identifier exists -> account active -> password ok
                       -> token pair -> success observation
    login (email code) code consumed -> optional password -> account active
                       -> access token only
    refresh            refresh-kind token -> not revoked -> account active
                       -> new pair (old token revoked when rotation is on)
    logout             access-kind token -> revoked for its remaining lifetime

Every failed login publishes a failure observation before the error
propagates. Observations go through the login audit dispatcher and never
block or fail the request.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import IntegrityError

from rest_api.models.user import User
from rest_api.repositories.user import UserRepository
from rest_api.services.verification_service import VerificationService
from shared.config.constants import AccountStatus, CodePurpose, Roles
from shared.config.logging import get_logger, audit_auth_event, audit_token_event, mask_token
from shared.infrastructure.kv_store import StoreUnavailableError
from shared.security.audit_log import LoginAuditDispatcher, LoginObservation
from shared.security.password import hash_password, needs_rehash, verify_password
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
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    ServiceUnavailableError,
    TokenExpiredError,
    TokenRevokedError,
    TokenTypeError,
    UserDisabledError,
    UserExistsError,
    UserInactiveError,
    ValidationError,
    WrongPasswordError,
)
from shared.utils.schemas import RegisterRequest

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthPolicy:
    """Session hardening switches. Defaults keep refresh tokens reusable and sessions alive."""

    rotate_refresh_tokens: bool = False
    revoke_sessions_on_password_change: bool = False
    require_email_verification: bool = False


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str | None
    expires_in: int


def ensure_active(user: User) -> None:
    """Banned and inactive accounts are rejected with distinct errors."""
    if user.status == AccountStatus.BANNED:
        raise UserDisabledError(user_id=user.id)
    if user.status != AccountStatus.ACTIVE:
        raise UserInactiveError(user_id=user.id, status=user.status)


def _hash_new_password(password: str) -> str:
    try:
        return hash_password(password)
    except ValueError as e:
        raise ValidationError(str(e), field="password")


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        verification: VerificationService,
        codec: TokenCodec,
        revocations: TokenRevocationStore,
        audit: LoginAuditDispatcher,
        policy: AuthPolicy = AuthPolicy(),
        clock: Callable[[], float] = time.time,
    ):
        self._users = users
        self._verification = verification
        self._codec = codec
        self._revocations = revocations
        self._audit = audit
        self._policy = policy
        self._clock = clock

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, data: RegisterRequest) -> User:
        if self._policy.require_email_verification and not data.code:
            raise ValidationError("Verification code is required", field="code")

        if self._users.username_or_email_taken(data.username, data.email):
            raise UserExistsError(username=data.username)

        password_hash = _hash_new_password(data.password)

        if data.code:
            self._verification.consume_code(data.email, data.code, CodePurpose.REGISTER)

        user = User(
            username=data.username,
            email=data.email,
            password_hash=password_hash,
            real_name=data.real_name,
            major=data.major,
            class_name=data.class_name,
            phone=data.phone,
            role=Roles.STUDENT,
            status=AccountStatus.ACTIVE,
            email_verified=bool(data.code),
        )
        try:
            user = self._users.create(user)
        except IntegrityError:
            raise UserExistsError(username=data.username)

        audit_auth_event("REGISTER", user_id=user.id, email=user.email)
        return user

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    def _observe(
        self,
        success: bool,
        ip: str,
        user_agent: str,
        method: str,
        user_id: int | None = None,
        identifier: str | None = None,
        reason: str | None = None,
    ) -> None:
        self._audit.submit(
            LoginObservation(
                success=success,
                ip_address=ip,
                user_agent=user_agent,
                user_id=user_id,
                identifier=identifier,
                method=method,
                reason=reason,
                occurred_at=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            )
        )

    def login(self, identifier: str, password: str, ip: str, user_agent: str = "") -> LoginResult:
        user_id: int | None = None
        try:
            user = self._users.find_by_identifier(identifier)
            if user is None:
                raise InvalidCredentialsError(reason="unknown_identifier")
            user_id = user.id

            ensure_active(user)

            if not verify_password(password, user.password_hash):
                raise InvalidCredentialsError(user_id=user.id, reason="wrong_password")

            pair = self._codec.issue_pair(user.id, user.role)
        except AppException as e:
            self._observe(False, ip, user_agent, "password", user_id, identifier, e.detail)
            raise

        self._upgrade_hash(user, password)
        self._observe(True, ip, user_agent, "password", user.id, identifier)
        return LoginResult(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
        )

    def login_with_code(
        self,
        email: str,
        code: str,
        password: str,
        ip: str,
        user_agent: str = "",
    ) -> LoginResult:
        """Email-code login issues an access token only."""
        user_id: int | None = None
        try:
            self._verification.consume_code(email, code, CodePurpose.LOGIN)

            user = self._users.find_by_email(email)
            if user is None:
                raise InvalidCredentialsError(reason="unknown_email")
            user_id = user.id

            # Code-only login is allowed; a supplied password must still match
            if password and not verify_password(password, user.password_hash):
                raise InvalidCredentialsError(user_id=user.id, reason="wrong_password")

            ensure_active(user)

            access_token = self._codec.issue_access(user.id, user.role)
        except AppException as e:
            self._observe(False, ip, user_agent, "email_code", user_id, email, e.detail)
            raise

        self._observe(True, ip, user_agent, "email_code", user.id, email)
        return LoginResult(
            user=user,
            access_token=access_token,
            refresh_token=None,
            expires_in=self._codec.access_ttl_seconds,
        )

    def _upgrade_hash(self, user: User, password: str) -> None:
        if not needs_rehash(user.password_hash):
            return
        try:
            self._users.update_password(user.id, hash_password(password))
            logger.info("Password hash upgraded", user_id=user.id)
        except ValueError as e:
            # Legacy password that no longer meets the length rules
            logger.warning("Password hash upgrade skipped", user_id=user.id, error=str(e))

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    def _validate(self, token: str, validate: Callable[[str], TokenClaims]) -> TokenClaims:
        try:
            return validate(token)
        except ExpiredTokenError:
            raise TokenExpiredError(token_hash=mask_token(token))
        except WrongTokenKindError:
            raise TokenTypeError(token_hash=mask_token(token))
        except MalformedTokenError as e:
            raise InvalidTokenError(token_hash=mask_token(token), reason=str(e))

    def _ensure_not_revoked(self, token: str, claims: TokenClaims) -> None:
        try:
            revoked = self._revocations.is_revoked(token) or self._revocations.is_user_revoked(
                claims.user_id, claims.issued_at_ms
            )
        except StoreUnavailableError:
            raise ServiceUnavailableError("revocation store", retry_after=5)
        if revoked:
            raise TokenRevokedError(user_id=claims.user_id, token_type=claims.kind)

    def refresh(self, refresh_token: str) -> LoginResult:
        claims = self._validate(refresh_token, self._codec.validate_refresh)
        self._ensure_not_revoked(refresh_token, claims)

        user = self._users.find_by_id(claims.user_id)
        if user is None:
            raise InvalidTokenError(reason="subject no longer exists")
        ensure_active(user)

        if self._policy.rotate_refresh_tokens:
            remaining = self._codec.remaining_ttl(claims)
            if remaining <= 0:
                raise TokenExpiredError()
            try:
                first_use = self._revocations.revoke(refresh_token, remaining)
            except StoreUnavailableError:
                raise ServiceUnavailableError("revocation store", retry_after=5)
            if not first_use:
                # Another request rotated this token first
                raise TokenRevokedError(user_id=user.id, token_type=claims.kind)

        # Role comes from the account, not the old token, so role changes apply on refresh
        pair = self._codec.issue_pair(user.id, user.role)
        audit_token_event(
            "REFRESHED",
            user_id=user.id,
            token_hash=mask_token(refresh_token),
            token_type=claims.kind,
            rotated=self._policy.rotate_refresh_tokens,
        )
        return LoginResult(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
        )

    def logout(self, access_token: str) -> None:
        """Revoke the presented access token until it would have expired."""
        claims = self._validate(access_token, self._codec.validate_access)

        remaining = self._codec.remaining_ttl(claims)
        if remaining <= 0:
            raise TokenExpiredError()

        try:
            self._revocations.revoke(access_token, remaining)
        except StoreUnavailableError:
            raise ServiceUnavailableError("revocation store", retry_after=5)

        audit_token_event("BLACKLISTED", user_id=claims.user_id, token_hash=mask_token(access_token), token_type=claims.kind)
        audit_auth_event("LOGOUT", user_id=claims.user_id)

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------

    def _revoke_sessions(self, user_id: int) -> None:
        if not self._policy.revoke_sessions_on_password_change:
            return
        try:
            self._revocations.revoke_user(user_id, self._codec.refresh_ttl_seconds)
        except StoreUnavailableError:
            raise ServiceUnavailableError("revocation store", retry_after=5)

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        if not verify_password(old_password, user.password_hash):
            raise WrongPasswordError(user_id=user_id)

        new_hash = _hash_new_password(new_password)
        # Sessions go first: a failed revocation must not leave old tokens valid under a new password
        self._revoke_sessions(user_id)
        self._users.update_password(user_id, new_hash)
        audit_auth_event("PASSWORD_CHANGED", user_id=user_id)

    def reset_password(self, email: str, code: str, new_password: str) -> None:
        new_hash = _hash_new_password(new_password)
        self._verification.consume_code(email, code, CodePurpose.RESET_PASSWORD)

        user = self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("User")

        self._revoke_sessions(user.id)
        self._users.update_password(user.id, new_hash)
        audit_auth_event("PASSWORD_RESET", user_id=user.id, email=email)

    def get_user_info(self, user_id: int) -> User:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
