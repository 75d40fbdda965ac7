"""
Dependency health checks.

A check is a plain function that raises when its dependency is unusable and
may return a dict of details. `timed_health_check` turns it into a function
returning a HealthCheckResult, bounded by a timeout so a hung socket cannot
hold the health endpoint.

Usage:
    @timed_health_check("kv_store", timeout=3.0)
    def check_kv_store(container):
        container.store.ping()

    report = aggregate_health_checks([check_kv_store(container)])
"""

from __future__ import annotations

import functools
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    component: str
    status: HealthStatus
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"component": self.component, "status": self.status.value}
        if self.latency_ms is not None:
            data["latency_ms"] = round(self.latency_ms, 2)
        if self.error:
            data["error"] = self.error
        if self.details:
            data["details"] = self.details
        return data


def timed_health_check(
    component: str,
    timeout: float = 5.0,
) -> Callable[[Callable[..., dict[str, Any] | None]], Callable[..., HealthCheckResult]]:
    """Run the wrapped check on a worker thread; any exception or timeout is UNHEALTHY."""

    def decorator(check: Callable[..., dict[str, Any] | None]) -> Callable[..., HealthCheckResult]:
        @functools.wraps(check)
        def run(*args: Any, **kwargs: Any) -> HealthCheckResult:
            started = time.perf_counter()
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"health-{component}")
            try:
                details = executor.submit(check, *args, **kwargs).result(timeout=timeout)
                error = None
            except FutureTimeout:
                details, error = None, f"timeout after {timeout}s"
            except Exception as e:
                details, error = None, str(e) or type(e).__name__
            finally:
                # A hung check keeps its thread; the endpoint must not wait for it
                executor.shutdown(wait=False)

            elapsed_ms = (time.perf_counter() - started) * 1000
            if error is not None:
                logger.warning("Health check failed", component=component, error=error)
                return HealthCheckResult(component, HealthStatus.UNHEALTHY, elapsed_ms, error=error)
            return HealthCheckResult(
                component,
                HealthStatus.HEALTHY,
                elapsed_ms,
                details=details if isinstance(details, dict) else {},
            )

        return run

    return decorator


def aggregate_health_checks(results: list[HealthCheckResult]) -> dict[str, Any]:
    """{"status": "healthy" | "degraded", "components": {name: result}}"""
    status = HealthStatus.HEALTHY if all(r.healthy for r in results) else HealthStatus.DEGRADED
    return {
        "status": status.value,
        "components": {r.component: r.to_dict() for r in results},
    }
