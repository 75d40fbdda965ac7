"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.

Engines are built by the application container rather than at import time,
so tests can point the whole stack at an in-memory SQLite database.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

SessionFactory = Callable[[], Session]


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine with connection pooling and timeouts.

    SQLite URLs skip the pool and connect-timeout options, which that
    dialect does not accept.
    """
    if database_url.startswith("sqlite"):
        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            # One shared connection, otherwise every session sees its own empty database
            poolclass=StaticPool if in_memory else None,
            echo=echo,
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=_calculate_pool_size(),
        max_overflow=15,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Session factory shared by every repository.

    expire_on_commit=False keeps loaded rows usable after the short-lived
    session that produced them is closed.
    """
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@contextmanager
def session_scope(session_factory: SessionFactory) -> Generator[Session, None, None]:
    """
    Context manager for one unit of work.

    Usage:
        with session_scope(factory) as db:
            db.add(user)
            safe_commit(db)
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Safe commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
