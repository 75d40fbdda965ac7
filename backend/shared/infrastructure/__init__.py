"""
Infrastructure module: Database sessions and the key-value store.

Provides:
- Database engines and session factories (db.py)
- Redis / in-memory key-value store (kv_store.py)
- Request correlation ids (correlation.py)
"""

from shared.infrastructure.db import (
    create_db_engine,
    create_session_factory,
    session_scope,
    safe_commit,
)
from shared.infrastructure.kv_store import (
    KeyValueStore,
    RedisStore,
    MemoryStore,
    StoreUnavailableError,
    create_store,
)

__all__ = [
    # db
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    "safe_commit",
    # kv store
    "KeyValueStore",
    "RedisStore",
    "MemoryStore",
    "StoreUnavailableError",
    "create_store",
]
