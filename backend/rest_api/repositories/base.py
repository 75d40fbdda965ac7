"""
Repository base.

Repositories live as long as the application container and open one short
session per call from the shared session factory. That makes them usable
from request threads and from the login audit worker alike. Rows come back
detached; callers read them but never lazy-load relationships.
"""

from dataclasses import dataclass
from typing import ClassVar, Generic, Sequence, TypeVar

from sqlalchemy import Select

from shared.config.constants import Limits
from shared.infrastructure.db import SessionFactory, session_scope

ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        # Clamp rather than reject: services call this with CLI input too
        self.limit = max(1, min(self.limit, Limits.MAX_PAGE_SIZE))
        self.offset = max(self.offset, 0)

    def page(self, query: Select) -> Select:
        return query.offset(self.offset).limit(self.limit)


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    def _all(self, query: Select) -> Sequence[ModelT]:
        with self._session() as db:
            return db.execute(query).scalars().all()

    def find_by_id(self, entity_id: int) -> ModelT | None:
        with self._session() as db:
            return db.get(self.model, entity_id)
