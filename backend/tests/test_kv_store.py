"""
Tests for the key-value store backends.
"""

from unittest.mock import MagicMock

import pytest
import redis

from shared.infrastructure.kv_store import (
    MemoryStore,
    RedisStore,
    StoreUnavailableError,
    create_store,
)

from conftest import FakeClock


class TestMemoryStore:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return MemoryStore(clock=clock)

    def test_set_if_absent_keeps_first_value(self, store):
        assert store.set_if_absent("k", "first", 60) is True
        assert store.set_if_absent("k", "second", 60) is False
        assert store.get("k") == "first"

    def test_entries_expire(self, store, clock):
        store.set_with_ttl("k", "v", 10)
        clock.advance(9)
        assert store.exists("k")
        clock.advance(1)
        assert not store.exists("k")
        assert store.get("k") is None

    def test_ttl_reporting(self, store, clock):
        assert store.ttl("missing") == -2
        store.set_with_ttl("k", "v", 30)
        clock.advance(10.5)
        assert store.ttl("k") == 20

    def test_counter_window(self, store, clock):
        assert store.incr_with_ttl("c", 60) == (1, 60)
        clock.advance(15)
        assert store.incr_with_ttl("c", 60) == (2, 45)
        clock.advance(45)
        assert store.incr_with_ttl("c", 60) == (1, 60)

    def test_delete_and_close(self, store):
        store.set_with_ttl("a", "1", 60)
        store.set_with_ttl("b", "1", 60)
        store.delete("a")
        assert not store.exists("a")
        store.close()
        assert not store.exists("b")


class TestRedisStore:

    @pytest.fixture
    def client(self):
        return MagicMock(spec=redis.Redis)

    def test_set_if_absent_uses_nx_ex(self, client):
        client.set.return_value = True
        store = RedisStore("redis://unused", client=client)

        assert store.set_if_absent("k", "1", 30) is True
        client.set.assert_called_once_with("k", "1", ex=30, nx=True)

    def test_set_if_absent_existing_key(self, client):
        client.set.return_value = None
        store = RedisStore("redis://unused", client=client)
        assert store.set_if_absent("k", "1", 30) is False

    def test_counter_runs_script(self, client):
        script = MagicMock(return_value=[3, 42])
        client.register_script.return_value = script
        store = RedisStore("redis://unused", client=client)

        assert store.incr_with_ttl("c", 60) == (3, 42)
        script.assert_called_once_with(keys=["c"], args=[60])

    @pytest.mark.parametrize("operation, args", [
        ("get", ("k",)),
        ("exists", ("k",)),
        ("ttl", ("k",)),
        ("ping", ()),
    ])
    def test_redis_errors_become_store_unavailable(self, client, operation, args):
        getattr(client, operation).side_effect = redis.ConnectionError("connection refused")
        store = RedisStore("redis://unused", client=client)

        with pytest.raises(StoreUnavailableError):
            getattr(store, operation)(*args)

    def test_timeout_becomes_store_unavailable(self, client):
        script = MagicMock(side_effect=redis.TimeoutError("timed out"))
        client.register_script.return_value = script
        store = RedisStore("redis://unused", client=client)

        with pytest.raises(StoreUnavailableError):
            store.incr_with_ttl("c", 60)


class TestCreateStore:

    def test_memory_backend(self):
        assert isinstance(create_store("memory", ""), MemoryStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_store("memcached", "")
