"""
Login log repository.
"""

from typing import Sequence

from sqlalchemy import select

from rest_api.models.login_log import LoginLog
from shared.infrastructure.db import safe_commit
from shared.security.audit_log import LoginObservation

from .base import BaseRepository, RepositoryFilters


class LoginLogRepository(BaseRepository[LoginLog]):
    model = LoginLog

    def record(self, observation: LoginObservation) -> None:
        """Login audit sink: persist one observation."""
        entry = LoginLog(
            user_id=observation.user_id,
            ip_address=observation.ip_address,
            user_agent=observation.user_agent or None,
            success=observation.success,
            method=observation.method,
            reason=observation.reason,
            created_at=observation.occurred_at,
        )
        with self._session() as db:
            db.add(entry)
            safe_commit(db)

    def find_recent(
        self,
        filters: RepositoryFilters | None = None,
        user_id: int | None = None,
        success: bool | None = None,
    ) -> Sequence[LoginLog]:
        filters = filters or RepositoryFilters()
        query = select(LoginLog)
        if user_id is not None:
            query = query.where(LoginLog.user_id == user_id)
        if success is not None:
            query = query.where(LoginLog.success.is_(success))
        query = query.order_by(LoginLog.created_at.desc(), LoginLog.id.desc())
        return self._all(filters.page(query))
