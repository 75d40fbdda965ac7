"""
User Repository.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import Select, or_, select, update

from rest_api.models.user import User
from shared.infrastructure.db import safe_commit

from .base import BaseRepository, RepositoryFilters


@dataclass
class UserFilters(RepositoryFilters):
    role: str | None = None
    status: str | None = None


class UserRepository(BaseRepository[User]):
    """Lookup and persistence for accounts."""

    model = User

    def find_by_username(self, username: str) -> User | None:
        with self._session() as db:
            return db.scalar(select(User).where(User.username == username))

    def find_by_email(self, email: str) -> User | None:
        with self._session() as db:
            return db.scalar(select(User).where(User.email == email.strip().lower()))

    def find_by_identifier(self, identifier: str) -> User | None:
        """Identifiers containing '@' are emails, anything else is a username."""
        if "@" in identifier:
            return self.find_by_email(identifier)
        return self.find_by_username(identifier)

    def username_or_email_taken(self, username: str, email: str) -> bool:
        query = select(User.id).where(
            or_(User.username == username, User.email == email.strip().lower())
        )
        with self._session() as db:
            return db.scalar(query.limit(1)) is not None

    def create(self, user: User) -> User:
        """
        Insert a new user.

        Raises:
            sqlalchemy.exc.IntegrityError: username or email already taken
            (a concurrent registration won the race).
        """
        user.email = user.email.strip().lower()
        with self._session() as db:
            db.add(user)
            safe_commit(db)
            db.refresh(user)
            return user

    def update_fields(self, user_id: int, fields: dict[str, Any]) -> User | None:
        """Apply already-validated column values. Returns the fresh row, or None if missing."""
        with self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            for name, value in fields.items():
                setattr(user, name, value)
            safe_commit(db)
            db.refresh(user)
            return user

    def update_password(self, user_id: int, password_hash: str) -> bool:
        with self._session() as db:
            result = db.execute(
                update(User).where(User.id == user_id).values(password_hash=password_hash)
            )
            safe_commit(db)
            return result.rowcount == 1

    def touch_last_login(self, user_id: int, when: datetime) -> None:
        with self._session() as db:
            db.execute(update(User).where(User.id == user_id).values(last_login_at=when))
            safe_commit(db)

    def _apply_filters(self, query: Select, filters: UserFilters) -> Select:
        if filters.role:
            query = query.where(User.role == filters.role)
        if filters.status:
            query = query.where(User.status == filters.status)
        return query

    def find_all(self, filters: UserFilters | None = None) -> Sequence[User]:
        filters = filters or UserFilters()
        query = self._apply_filters(select(User), filters).order_by(User.id)
        return self._all(filters.page(query))
