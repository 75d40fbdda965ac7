"""
Structured logging.

Loggers accept keyword context (``logger.info("Token blacklisted", ttl=30)``).
Production writes one JSON object per line; development writes colored
single lines. Context keys that look like credentials are redacted by the
formatters, so a stray ``password=`` or ``token=`` never reaches the output.

Security-relevant events go to the ``security.audit`` logger through the
``audit_*`` helpers at the bottom of this module.
"""

import hashlib
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

# Context keys whose values are never written out
REDACTED_KEYS = frozenset({
    "password",
    "old_password",
    "new_password",
    "password_hash",
    "token",
    "access_token",
    "refresh_token",
    "authorization",
    "secret",
})
REDACTED = "[redacted]"


def redact(data: dict[str, Any] | None) -> dict[str, Any]:
    if not data:
        return {}
    return {k: (REDACTED if k.lower() in REDACTED_KEYS else v) for k, v in data.items()}


class StructuredFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation."""

    def __init__(self, service: str = "studyhub", environment: str | None = None):
        super().__init__()
        self.service = service
        self.environment = environment or settings.environment

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "environment": self.environment,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            document["request_id"] = request_id

        context = redact(getattr(record, "context", None))
        if context:
            document["context"] = context

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            document["source"] = f"{record.pathname}:{record.lineno} ({record.funcName})"

        return json.dumps(document, default=str, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]

        parts = [f"{self.DIM}{clock}{self.RESET}", f"{color}{record.levelname:<8}{self.RESET}"]

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            parts.append(f"{self.DIM}{request_id[:8]}{self.RESET}")

        parts.append(f"{record.name}: {record.getMessage()}")

        context = redact(getattr(record, "context", None))
        if context:
            parts.append(self.DIM + " ".join(f"{k}={v!r}" for k, v in context.items()) + self.RESET)

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose level methods take keyword context instead of `extra`."""

    def _emit(self, level: int, msg: str, args: tuple, context: dict[str, Any]) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = context.pop("exc_info", None)
        extra = context.pop("extra", None) or {}
        extra["context"] = context
        # stacklevel 3 points funcName/lineno at the caller, not at this wrapper
        self._log(level, msg, args, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, msg: str, *args: Any, **context: Any) -> None:
        self._emit(logging.DEBUG, msg, args, context)

    def info(self, msg: str, *args: Any, **context: Any) -> None:
        self._emit(logging.INFO, msg, args, context)

    def warning(self, msg: str, *args: Any, **context: Any) -> None:
        self._emit(logging.WARNING, msg, args, context)

    def error(self, msg: str, *args: Any, **context: Any) -> None:
        self._emit(logging.ERROR, msg, args, context)

    def critical(self, msg: str, *args: Any, **context: Any) -> None:
        self._emit(logging.CRITICAL, msg, args, context)

    def log_at(self, level: int, msg: str, **context: Any) -> None:
        """Level chosen at runtime."""
        self._emit(level, msg, (), context)


logging.setLoggerClass(StructuredLogger)


def setup_logging(level: int | None = None, json_output: bool | None = None) -> None:
    """
    Install the stdout handler on the root logger.

    Safe to call more than once; the previous handler is replaced.
    Defaults: DEBUG when settings.debug, JSON in production.
    """
    from shared.infrastructure.correlation import CorrelationIdFilter

    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO
    if json_output is None:
        json_output = settings.environment == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(StructuredFormatter() if json_output else DevelopmentFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Usage:
        logger = get_logger(__name__)
        logger.info("Verification code issued", email=mask_email(email), purpose="login")
        logger.error("Could not persist login log", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


# =============================================================================
# Masking
# =============================================================================


def mask_email(email: str | None) -> str:
    """Keep the first two characters of the local part and the whole domain: al***@campus.edu."""
    if not email or "@" not in email:
        return "<no-email>" if not email else "***@invalid"
    local, domain = email.split("@", 1)
    return f"{local[:2] or '*'}***@{domain}"


def mask_token(token: str | None) -> str:
    """Short digest of a raw token; bearer credentials never reach the logs."""
    if not token:
        return "<no-token>"
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


rest_api_logger = get_logger("rest_api")
auth_logger = get_logger("rest_api.auth")
security_audit_logger = get_logger("security.audit")


# =============================================================================
# Security audit trail
# =============================================================================


def audit_auth_event(
    event_type: str,
    user_id: int | str | None = None,
    email: str | None = None,
    success: bool = True,
    reason: str | None = None,
    ip_address: str | None = None,
    **extra: Any,
) -> None:
    """
    Account events: LOGIN, LOGOUT, REGISTER, PASSWORD_CHANGED, PASSWORD_RESET,
    ACCOUNT_UPDATED. Failures are logged at WARNING.
    """
    security_audit_logger.log_at(
        logging.INFO if success else logging.WARNING,
        f"AUTH_AUDIT: {event_type}",
        event_type=event_type,
        user_id=user_id,
        email=mask_email(email) if email else None,
        success=success,
        reason=reason,
        ip_address=ip_address,
        **extra,
    )


def audit_rate_limit_event(
    context: str,
    identifier: int | str,
    limit: int,
    window: int,
    ip_address: str | None = None,
    **extra: Any,
) -> None:
    """A login counter (`login_ip` or `login_user`) went over its limit."""
    security_audit_logger.warning(
        f"RATE_LIMIT_AUDIT: {context}",
        counter=context,
        identifier=identifier,
        limit=limit,
        window=window,
        ip_address=ip_address,
        **extra,
    )


def audit_token_event(
    event_type: str,
    user_id: int | str | None = None,
    token_hash: str | None = None,
    token_type: str | None = None,
    **extra: Any,
) -> None:
    """
    Token lifecycle: BLACKLISTED, USER_REVOKED, REFRESHED.

    token_hash must come from mask_token().
    """
    security_audit_logger.info(
        f"TOKEN_AUDIT: {event_type}",
        event_type=event_type,
        user_id=user_id,
        token_hash=token_hash,
        token_type=token_type,
        **extra,
    )
