"""
Login audit dispatch.

Login outcomes are published as LoginObservation events onto a bounded
queue and written by a single background worker thread, so persisting the
login log never delays the login response.

Delivery contract: at-most-once, best effort.
- A full queue drops the observation (logged as a warning).
- A sink that raises loses that observation (logged as an error).
- Observations still queued when the process dies are lost.
Nothing in the auth flow may depend on an observation having been written.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from shared.config.logging import get_logger, audit_auth_event

logger = get_logger(__name__)

LoginSink = Callable[["LoginObservation"], None]


@dataclass(frozen=True)
class LoginObservation:
    """One login attempt, successful or not."""

    success: bool
    ip_address: str
    user_agent: str = ""
    user_id: int | None = None  # None when the identifier did not resolve
    identifier: str | None = None
    method: str = "password"  # password | email_code
    reason: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LoginAuditDispatcher:
    """
    Bounded queue + one worker thread feeding registered sinks.

    Call start() during application startup and stop() during shutdown.
    """

    DEFAULT_QUEUE_SIZE = 1000
    POLL_INTERVAL = 0.5

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE):
        self._queue: queue.Queue[LoginObservation] = queue.Queue(maxsize=max_queue_size)
        self._sinks: list[LoginSink] = []
        self._worker: threading.Thread | None = None
        self._running = threading.Event()
        self.dropped = 0

    def subscribe(self, sink: LoginSink) -> None:
        self._sinks.append(sink)

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        if self.running:
            logger.warning("Login audit worker already running")
            return
        self._running.set()
        self._worker = threading.Thread(target=self._worker_loop, name="login_audit_worker", daemon=True)
        self._worker.start()
        logger.info("Login audit worker started", queue_max_size=self._queue.maxsize, sinks=len(self._sinks))

    def stop(self, timeout: float = 5.0) -> None:
        """Wait up to `timeout` for queued observations, then stop the worker."""
        if not self.running:
            return
        self.flush(timeout)
        self._running.clear()
        if self._worker is not None:
            self._worker.join(timeout=timeout)
            self._worker = None
        remaining = self._queue.qsize()
        if remaining:
            logger.warning("Login audit worker stopped with undelivered observations", remaining=remaining)
        logger.info("Login audit worker stopped")

    def submit(self, observation: LoginObservation) -> bool:
        """
        Hand an observation to the worker without blocking.

        Returns False when it was dropped.
        """
        audit_auth_event(
            "LOGIN",
            user_id=observation.user_id,
            success=observation.success,
            reason=observation.reason,
            ip_address=observation.ip_address,
            method=observation.method,
        )

        if not self.running:
            self.dropped += 1
            logger.debug("Login audit worker not running, dropping observation")
            return False
        try:
            self._queue.put_nowait(observation)
            return True
        except queue.Full:
            self.dropped += 1
            logger.warning("Login audit queue full, dropping observation", queue_size=self._queue.qsize())
            return False

    def flush(self, timeout: float = 5.0) -> bool:
        """Block until every queued observation was handled. True if drained in time."""
        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def _worker_loop(self) -> None:
        while self._running.is_set():
            try:
                observation = self._queue.get(timeout=self.POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                for sink in self._sinks:
                    try:
                        sink(observation)
                    except Exception as e:
                        logger.error(
                            "Login audit sink failed",
                            sink=getattr(sink, "__qualname__", repr(sink)),
                            error=str(e),
                            exc_info=True,
                        )
            finally:
                self._queue.task_done()
