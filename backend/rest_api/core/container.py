"""
Application container.

Builds every long-lived collaborator once (engine, key-value store, token
codec, limiter, audit worker, services) and hangs them on ``app.state`` so
routes resolve them per request instead of importing module globals.

Tests build a Container with an in-memory store, a SQLite database and a
fake clock and pass it to create_app().
"""

from __future__ import annotations

import time
from typing import Callable

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from rest_api.repositories import LoginLogRepository, UserRepository, VerificationRepository
from rest_api.services import (
    AuthPolicy,
    AuthService,
    CodeSender,
    LoggingCodeSender,
    SmtpCodeSender,
    UserService,
    VerificationService,
)
from shared.config.logging import get_logger
from shared.config.settings import Settings, settings as default_settings
from shared.infrastructure.db import create_db_engine, create_session_factory
from shared.infrastructure.kv_store import KeyValueStore, create_store
from shared.security.audit_log import LoginAuditDispatcher, LoginObservation
from shared.security.auth import AccessGate
from shared.security.rate_limit import LoginAttemptLimiter
from shared.security.token_blacklist import TokenRevocationStore
from shared.security.tokens import TokenCodec

logger = get_logger(__name__)


def build_code_sender(config: Settings) -> CodeSender:
    if config.smtp_host:
        return SmtpCodeSender(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            from_email=config.smtp_from,
        )
    logger.warning("SMTP_HOST not set, verification codes are only logged")
    return LoggingCodeSender(environment=config.environment)


class Container:
    """Holds the singleton collaborators for one FastAPI app."""

    def __init__(
        self,
        config: Settings | None = None,
        engine: Engine | None = None,
        store: KeyValueStore | None = None,
        code_sender: CodeSender | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = config or default_settings
        self.clock = clock

        self.engine = engine or create_db_engine(self.settings.database_url)
        self.session_factory = create_session_factory(self.engine)

        self.store = store or create_store(
            self.settings.kv_backend,
            self.settings.redis_url,
            max_connections=self.settings.redis_pool_max_connections,
            socket_timeout=self.settings.redis_socket_timeout,
        )

        self.codec = TokenCodec(
            secret=self.settings.jwt_secret,
            issuer=self.settings.jwt_issuer,
            access_ttl=self.settings.jwt_access_token_expire_minutes * 60,
            refresh_ttl=self.settings.jwt_refresh_token_expire_hours * 3600,
            leeway=self.settings.jwt_leeway_seconds,
            clock=clock,
        )
        self.revocations = TokenRevocationStore(self.store, clock=clock)
        self.access_gate = AccessGate(self.codec, self.revocations)
        self.login_limiter = LoginAttemptLimiter(
            self.store,
            ip_limit=self.settings.login_ip_limit,
            user_limit=self.settings.login_user_limit,
            ip_window=self.settings.login_ip_window,
            user_window=self.settings.login_user_window,
            clock=clock,
        )

        # Repositories
        self.users = UserRepository(self.session_factory)
        self.verifications = VerificationRepository(self.session_factory)
        self.login_logs = LoginLogRepository(self.session_factory)

        # Login audit worker: persists the login log and last-login timestamps
        self.login_audit = LoginAuditDispatcher(max_queue_size=self.settings.login_audit_queue_size)
        self.login_audit.subscribe(self.login_logs.record)
        self.login_audit.subscribe(self._record_last_login)

        self.code_sender = code_sender or build_code_sender(self.settings)

        policy = AuthPolicy(
            rotate_refresh_tokens=self.settings.rotate_refresh_tokens,
            revoke_sessions_on_password_change=self.settings.revoke_sessions_on_password_change,
            require_email_verification=self.settings.require_email_verification,
        )
        self.verification_service = VerificationService(
            self.verifications,
            self.code_sender,
            ttl_minutes=self.settings.verification_code_ttl_minutes,
            clock=clock,
        )
        self.auth_service = AuthService(
            self.users,
            self.verification_service,
            self.codec,
            self.revocations,
            self.login_audit,
            policy=policy,
            clock=clock,
        )
        self.user_service = UserService(
            self.users,
            self.login_logs,
            self.revocations,
            session_ttl_seconds=self.codec.refresh_ttl_seconds,
            policy=policy,
        )

    def _record_last_login(self, observation: LoginObservation) -> None:
        if observation.success and observation.user_id is not None:
            self.users.touch_last_login(observation.user_id, observation.occurred_at)

    def install(self, app: FastAPI) -> None:
        app.state.container = self
        app.state.access_gate = self.access_gate

    def start(self) -> None:
        self.login_audit.start()

    def shutdown(self) -> None:
        self.login_audit.stop()
        self.store.close()
        self.engine.dispose()
        logger.info("Container shut down")


def get_container(app: FastAPI) -> Container:
    return app.state.container

