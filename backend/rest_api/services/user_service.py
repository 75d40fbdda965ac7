"""
Profile and account administration.
"""

from __future__ import annotations

from typing import Sequence

from rest_api.models.login_log import LoginLog
from rest_api.models.user import User
from rest_api.repositories.base import RepositoryFilters
from rest_api.repositories.login_log import LoginLogRepository
from rest_api.repositories.user import UserFilters, UserRepository
from rest_api.services.auth_service import AuthPolicy
from shared.config.constants import AccountStatus
from shared.config.logging import get_logger, audit_auth_event
from shared.infrastructure.kv_store import StoreUnavailableError
from shared.security.token_blacklist import TokenRevocationStore
from shared.utils.exceptions import ForbiddenError, NotFoundError, ServiceUnavailableError
from shared.utils.schemas import AdminUserUpdate, ProfileUpdate

logger = get_logger(__name__)

# Profile columns that may not be cleared once set
NON_NULLABLE_PROFILE_FIELDS = {"real_name"}


class UserService:
    def __init__(
        self,
        users: UserRepository,
        login_logs: LoginLogRepository,
        revocations: TokenRevocationStore,
        session_ttl_seconds: int,
        policy: AuthPolicy = AuthPolicy(),
    ):
        self._users = users
        self._login_logs = login_logs
        self._revocations = revocations
        self._session_ttl = session_ttl_seconds
        self._policy = policy

    def get_profile(self, user_id: int) -> User:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def update_profile(self, user_id: int, data: ProfileUpdate) -> User:
        """Apply only the fields present in the request."""
        fields = data.model_dump(exclude_unset=True)
        for name in NON_NULLABLE_PROFILE_FIELDS:
            if name in fields and fields[name] is None:
                del fields[name]

        if not fields:
            return self.get_profile(user_id)

        user = self._users.update_fields(user_id, fields)
        if user is None:
            raise NotFoundError("User", user_id)
        logger.info("Profile updated", user_id=user_id, fields=sorted(fields))
        return user

    def list_users(
        self,
        role: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[User]:
        return self._users.find_all(UserFilters(limit=limit, offset=offset, role=role, status=status))

    def admin_update(self, actor_id: int, user_id: int, data: AdminUserUpdate) -> User:
        """
        Change another account's role or status.

        Administrators cannot change their own role or status, so the last
        administrator can never lock themselves out.
        """
        if actor_id == user_id:
            raise ForbiddenError("change your own role or status", user_id=actor_id)

        user = self.get_profile(user_id)
        fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not fields:
            return user

        cut_sessions = (
            fields.get("status", user.status) != AccountStatus.ACTIVE
            or fields.get("role", user.role) != user.role
        )

        updated = self._users.update_fields(user_id, fields)
        if updated is None:
            raise NotFoundError("User", user_id)

        if cut_sessions and self._policy.revoke_sessions_on_password_change:
            try:
                self._revocations.revoke_user(user_id, self._session_ttl)
            except StoreUnavailableError:
                raise ServiceUnavailableError("revocation store", retry_after=5)

        audit_auth_event("ACCOUNT_UPDATED", user_id=user_id, actor_id=actor_id, **fields)
        return updated

    def list_login_logs(
        self,
        user_id: int | None = None,
        success: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[LoginLog]:
        return self._login_logs.find_recent(RepositoryFilters(limit=limit, offset=offset), user_id=user_id, success=success)
