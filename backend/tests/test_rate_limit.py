"""
Tests for the login attempt limiter.
"""

from unittest.mock import MagicMock

import pytest

from shared.infrastructure.kv_store import StoreUnavailableError
from shared.security.rate_limit import LoginAttemptLimiter, format_retry_time


@pytest.fixture
def login_limiter(store, clock):
    return LoginAttemptLimiter(store, ip_limit=10, user_limit=5, ip_window=3600, user_window=900, clock=clock)


class TestFormatRetryTime:

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "1 minute"), (59, "1 minute"), (60, "1 minute"), (61, "2 minutes"), (899, "15 minutes"), (900, "15 minutes")],
    )
    def test_rounds_up_to_minutes(self, seconds, expected):
        assert format_retry_time(seconds) == expected


class TestLoginAttemptLimiter:

    def test_sixth_attempt_for_identifier_blocked(self, login_limiter):
        for _ in range(5):
            assert login_limiter.check("10.0.0.1", "alice").allowed

        decision = login_limiter.check("10.0.0.1", "alice")
        assert not decision.allowed
        assert decision.scope == "user"
        assert 0 < decision.retry_after <= 900
        assert "15 minutes" in decision.message

    def test_identifier_limit_spans_addresses(self, login_limiter):
        for i in range(5):
            assert login_limiter.check(f"10.0.0.{i}", "alice").allowed
        assert not login_limiter.check("10.0.0.99", "alice").allowed

    def test_eleventh_attempt_from_address_blocked(self, login_limiter):
        for i in range(10):
            assert login_limiter.check("10.0.0.1", f"user{i}").allowed

        decision = login_limiter.check("10.0.0.1", "someone-new")
        assert not decision.allowed
        assert decision.scope == "ip"
        assert decision.retry_after <= 3600

    def test_address_checked_before_identifier(self, login_limiter, store):
        for i in range(10):
            login_limiter.check("10.0.0.1", f"user{i}")
        login_limiter.check("10.0.0.1", "fresh")
        # The blocked attempt never touched the identifier counter
        assert store.get("login:limit:user:fresh") is None

    def test_window_expiry_resets(self, login_limiter, clock):
        for _ in range(6):
            login_limiter.check("10.0.0.1", "alice")
        clock.advance(900)
        assert login_limiter.check("10.0.0.2", "alice").allowed

    def test_headers_describe_address_counter(self, login_limiter, clock):
        decision = login_limiter.check("10.0.0.1", "alice")
        headers = decision.headers()
        assert headers["X-RateLimit-Limit"] == "10"
        assert headers["X-RateLimit-Remaining"] == "9"
        assert headers["X-RateLimit-Reset"] == str(int(clock.now) + 3600)

    def test_blocked_decision_still_has_headers(self, login_limiter):
        for _ in range(6):
            decision = login_limiter.check("10.0.0.1", "alice")
        assert decision.headers()["X-RateLimit-Remaining"] == "4"

    def test_store_down_fails_open(self, clock):
        broken = MagicMock()
        broken.incr_with_ttl.side_effect = StoreUnavailableError("down")
        limiter = LoginAttemptLimiter(broken, ip_limit=1, user_limit=1, clock=clock)
        for _ in range(3):
            decision = limiter.check("10.0.0.1", "alice")
            assert decision.allowed
            assert decision.headers() == {}
