"""
Key-value store used for token revocation and login counters.

Two implementations share one interface:
- RedisStore: production backend on a redis-py connection pool.
- MemoryStore: in-process dict with TTLs, for tests and single-worker dev runs.

Every Redis failure (connection refused, timeout, protocol error) surfaces
as StoreUnavailableError so callers choose between failing open and
failing closed without importing redis.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable, Protocol

import redis

from shared.config.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


class StoreUnavailableError(Exception):
    """The key-value store could not complete an operation."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool: ...

    def set_with_ttl(self, key: str, value: str, ttl: int) -> None: ...

    def incr_with_ttl(self, key: str, window: int) -> tuple[int, int]: ...

    def ttl(self, key: str) -> int: ...

    def exists(self, key: str) -> bool: ...

    def delete(self, key: str) -> None: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


# =============================================================================
# Redis backend
# =============================================================================

# Atomic increment that attaches the window TTL on the first hit.
# Also repairs keys that lost their TTL (-1) so a counter can never live forever.
# Returns {count, ttl}.
INCR_WITH_TTL_LUA = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
local ttl = redis.call('TTL', KEYS[1])
if ttl == -1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
    ttl = tonumber(ARGV[1])
end
return {count, ttl}
"""


class RedisStore:
    """Key-value store on a sync Redis connection pool."""

    def __init__(
        self,
        url: str,
        max_connections: int = 50,
        socket_timeout: float = 5,
        client: redis.Redis | None = None,
    ):
        if client is None:
            pool = redis.ConnectionPool.from_url(
                url,
                max_connections=max_connections,
                decode_responses=True,
                socket_connect_timeout=socket_timeout,
                socket_timeout=socket_timeout,
                health_check_interval=30,  # Auto-detect dead connections
            )
            client = redis.Redis(connection_pool=pool)
            logger.info(
                "Redis sync pool initialized",
                max_connections=max_connections,
                timeout=socket_timeout,
            )
        self._client = client
        # Script objects retry with EVAL on NOSCRIPT after a server restart
        self._incr_script = client.register_script(INCR_WITH_TTL_LUA)

    def _call(self, operation: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except redis.RedisError as e:
            logger.warning("Redis operation failed", operation=operation, error=str(e))
            raise StoreUnavailableError(f"redis {operation} failed: {e}") from e

    def get(self, key: str) -> str | None:
        return self._call("get", self._client.get, key)

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        return bool(self._call("set", self._client.set, key, value, ex=ttl, nx=True))

    def set_with_ttl(self, key: str, value: str, ttl: int) -> None:
        self._call("setex", self._client.setex, key, ttl, value)

    def incr_with_ttl(self, key: str, window: int) -> tuple[int, int]:
        count, ttl = self._call("incr", self._incr_script, keys=[key], args=[window])
        return int(count), int(ttl)

    def ttl(self, key: str) -> int:
        return int(self._call("ttl", self._client.ttl, key))

    def exists(self, key: str) -> bool:
        return bool(self._call("exists", self._client.exists, key))

    def delete(self, key: str) -> None:
        self._call("delete", self._client.delete, key)

    def ping(self) -> bool:
        return bool(self._call("ping", self._client.ping))

    def close(self) -> None:
        try:
            self._client.connection_pool.disconnect()
            logger.info("Redis sync pool closed")
        except redis.RedisError as e:
            logger.warning("Error closing Redis sync pool", error=str(e))


# =============================================================================
# In-memory backend
# =============================================================================


class MemoryStore:
    """
    Thread-safe in-process store with Redis-like TTL semantics.

    The clock is injectable so tests can move time forward without sleeping.
    TTL reporting follows Redis: -2 for a missing key, -1 for a key without expiry.
    """

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (value, self._clock() + ttl)
            return True

    def set_with_ttl(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl)

    def incr_with_ttl(self, key: str, window: int) -> tuple[int, int]:
        with self._lock:
            entry = self._live(key)
            now = self._clock()
            if entry is None:
                self._data[key] = ("1", now + window)
                return 1, window
            value, expires_at = entry
            if expires_at is None:
                expires_at = now + window
            count = int(value) + 1
            self._data[key] = (str(count), expires_at)
            return count, max(0, math.ceil(expires_at - now))

    def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return -2
            if entry[1] is None:
                return -1
            return max(0, math.ceil(entry[1] - self._clock()))

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        with self._lock:
            self._data.clear()


def create_store(backend: str, redis_url: str, max_connections: int = 50, socket_timeout: float = 5) -> KeyValueStore:
    """Build the configured store backend."""
    if backend == "memory":
        logger.warning("Using in-memory key-value store; revocations are not shared between workers")
        return MemoryStore()
    if backend == "redis":
        return RedisStore(redis_url, max_connections=max_connections, socket_timeout=socket_timeout)
    raise ValueError(f"Unknown kv_backend '{backend}' (expected 'redis' or 'memory')")
