"""
Tests for the login audit dispatcher.
"""

import threading

import pytest

from shared.security.audit_log import LoginAuditDispatcher, LoginObservation


def observation(success: bool = True, user_id: int | None = 1) -> LoginObservation:
    return LoginObservation(success=success, ip_address="10.0.0.1", user_id=user_id, identifier="alice")


@pytest.fixture
def dispatcher():
    d = LoginAuditDispatcher(max_queue_size=10)
    yield d
    d.stop(timeout=1.0)


class TestLoginAuditDispatcher:

    def test_delivers_to_every_sink(self, dispatcher):
        first, second = [], []
        dispatcher.subscribe(first.append)
        dispatcher.subscribe(second.append)
        dispatcher.start()

        obs = observation()
        assert dispatcher.submit(obs) is True
        assert dispatcher.flush(timeout=2.0)
        assert first == [obs]
        assert second == [obs]

    def test_runs_on_worker_thread(self, dispatcher):
        threads = []
        dispatcher.subscribe(lambda obs: threads.append(threading.current_thread().name))
        dispatcher.start()
        dispatcher.submit(observation())
        dispatcher.flush(timeout=2.0)
        assert threads == ["login_audit_worker"]

    def test_failing_sink_does_not_stop_others(self, dispatcher):
        delivered = []

        def broken(obs):
            raise RuntimeError("database is down")

        dispatcher.subscribe(broken)
        dispatcher.subscribe(delivered.append)
        dispatcher.start()

        dispatcher.submit(observation(success=False, user_id=None))
        dispatcher.submit(observation())
        assert dispatcher.flush(timeout=2.0)
        assert len(delivered) == 2

    def test_dropped_when_not_running(self, dispatcher):
        delivered = []
        dispatcher.subscribe(delivered.append)
        assert dispatcher.submit(observation()) is False
        assert dispatcher.dropped == 1
        assert delivered == []

    def test_full_queue_drops_without_blocking(self):
        release = threading.Event()
        d = LoginAuditDispatcher(max_queue_size=1)
        d.subscribe(lambda obs: release.wait(timeout=2.0))
        d.start()
        try:
            results = [d.submit(observation()) for _ in range(5)]
            assert results[0] is True
            assert False in results
            assert d.dropped >= 1
        finally:
            release.set()
            d.stop(timeout=2.0)

    def test_stop_drains_queue(self):
        delivered = []
        d = LoginAuditDispatcher()
        d.subscribe(delivered.append)
        d.start()
        for _ in range(3):
            d.submit(observation())
        d.stop(timeout=2.0)
        assert len(delivered) == 3
        assert d.running is False
