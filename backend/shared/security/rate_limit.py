"""
Rate limiting.

Two mechanisms live here:
- LoginAttemptLimiter: per-address and per-identifier login counters on the
  key-value store (atomic INCR + EXPIRE). Advisory, so it fails OPEN when the
  store is unreachable.
- limiter: slowapi Limiter keyed by client IP for general endpoint throttling
  (verification code sending, token refresh, password reset).
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from shared.config.constants import ErrorCode
from shared.config.logging import get_logger, audit_rate_limit_event
from shared.config.settings import settings
from shared.infrastructure.kv_store import KeyValueStore, StoreUnavailableError
from shared.infrastructure.redis.constants import (
    LOGIN_IP_WINDOW,
    LOGIN_USER_WINDOW,
    get_login_ip_key,
    get_login_user_key,
)

logger = get_logger(__name__)

# Create limiter instance using client IP as key
limiter = Limiter(key_func=get_remote_address, storage_uri=settings.rate_limit_storage_uri)


def format_retry_time(seconds: int) -> str:
    """
    Render a cooldown as whole minutes, rounded up, never less than one.

    60 seconds reads "1 minute", 61 seconds reads "2 minutes".
    """
    minutes = max(1, math.ceil(seconds / 60))
    return f"{minutes} minute{'s' if minutes > 1 else ''}"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    scope: str | None = None  # "ip" or "user" when blocked
    limit: int | None = None
    remaining: int | None = None
    reset_at: int | None = None  # unix seconds when the address window ends
    retry_after: int = 0

    @property
    def message(self) -> str:
        if self.allowed:
            return ""
        wait = format_retry_time(self.retry_after)
        if self.scope == "user":
            return f"Too many login attempts for this account, try again in {wait}"
        return f"Too many login attempts, try again in {wait}"

    def headers(self) -> dict[str, str]:
        """X-RateLimit-* headers from the address counter. Empty when the store was unavailable."""
        if self.limit is None:
            return {}
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class LoginAttemptLimiter:
    """
    Fixed-window login counters.

    The address counter is evaluated first; the identifier counter is only
    touched when the address is still under its limit. The first breach wins.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ip_limit: int,
        user_limit: int,
        ip_window: int = LOGIN_IP_WINDOW,
        user_window: int = LOGIN_USER_WINDOW,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self.ip_limit = ip_limit
        self.user_limit = user_limit
        self.ip_window = ip_window
        self.user_window = user_window
        self._clock = clock

    def check(self, ip: str, identifier: str | None) -> RateLimitDecision:
        try:
            ip_count, ip_ttl = self._store.incr_with_ttl(get_login_ip_key(ip), self.ip_window)
        except StoreUnavailableError as e:
            logger.warning("Login limiter store unavailable - allowing attempt", ip_address=ip, error=str(e))
            return RateLimitDecision(allowed=True)

        ip_ttl = ip_ttl if ip_ttl > 0 else self.ip_window
        remaining = max(0, self.ip_limit - ip_count)
        reset_at = int(self._clock()) + ip_ttl

        if ip_count > self.ip_limit:
            audit_rate_limit_event("login_ip", ip, self.ip_limit, self.ip_window, ip_address=ip, count=ip_count)
            return RateLimitDecision(
                allowed=False,
                scope="ip",
                limit=self.ip_limit,
                remaining=remaining,
                reset_at=reset_at,
                retry_after=ip_ttl,
            )

        if identifier:
            try:
                user_count, user_ttl = self._store.incr_with_ttl(
                    get_login_user_key(identifier), self.user_window
                )
            except StoreUnavailableError as e:
                logger.warning("Login limiter store unavailable - allowing attempt", ip_address=ip, error=str(e))
                return RateLimitDecision(
                    allowed=True, limit=self.ip_limit, remaining=remaining, reset_at=reset_at
                )

            if user_count > self.user_limit:
                user_ttl = user_ttl if user_ttl > 0 else self.user_window
                audit_rate_limit_event(
                    "login_user", identifier, self.user_limit, self.user_window, ip_address=ip, count=user_count
                )
                return RateLimitDecision(
                    allowed=False,
                    scope="user",
                    limit=self.ip_limit,
                    remaining=remaining,
                    reset_at=reset_at,
                    retry_after=user_ttl,
                )

        return RateLimitDecision(allowed=True, limit=self.ip_limit, remaining=remaining, reset_at=reset_at)

    def clear(self, ip: str | None = None, identifier: str | None = None) -> None:
        """Drop the counters for an address and/or identifier (operator unlock)."""
        if ip:
            self._store.delete(get_login_ip_key(ip))
        if identifier:
            self._store.delete(get_login_user_key(identifier.strip().lower()))


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Handler for slowapi limit breaches.
    Renders the same error body as every other failure.
    """
    return JSONResponse(
        status_code=429,
        content={
            "code": ErrorCode.TOO_MANY_ATTEMPTS,
            "message": f"Rate limit exceeded: {exc.detail}",
        },
    )
