"""
Application errors.

Each class fixes an HTTP status and a default ErrorCode; the exception
handlers render them as ``{"code": ..., "message": ...}``. Raising one logs
it with whatever keyword context the caller passed:

    raise NotFoundError("User", user_id)
    raise InvalidCredentialsError(user_id=user.id, reason="wrong_password")
    raise ServiceUnavailableError("revocation store", retry_after=5)
"""

import logging
from typing import Any

from fastapi import HTTPException, status

from shared.config.constants import ErrorCode, ErrorMessages
from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: int = ErrorCode.SERVER_ERROR
    log_level: int = logging.WARNING
    headers: dict[str, str] | None = None

    def __init__(
        self,
        detail: str,
        code: int | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        if code is not None:
            self.code = code
        logger.log_at(
            self.log_level,
            detail,
            status_code=self.status_code,
            error_code=self.code,
            **log_context,
        )
        super().__init__(status_code=self.status_code, detail=detail, headers=headers or self.headers)


# 401


class UnauthorizedError(AppException):
    """No usable credentials on the request."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.UNAUTHORIZED
    log_level = logging.INFO
    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, detail: str = ErrorMessages.NO_TOKEN, code: int | None = None, **log_context: Any):
        super().__init__(detail, code, **log_context)


class InvalidTokenError(UnauthorizedError):
    code = ErrorCode.INVALID_TOKEN

    def __init__(self, detail: str = ErrorMessages.INVALID_TOKEN, **log_context: Any):
        super().__init__(detail, **log_context)


class TokenExpiredError(InvalidTokenError):
    def __init__(self, **log_context: Any):
        super().__init__(ErrorMessages.TOKEN_EXPIRED, **log_context)


class TokenTypeError(InvalidTokenError):
    """An access token where a refresh token belongs, or the other way round."""

    def __init__(self, **log_context: Any):
        super().__init__(ErrorMessages.TOKEN_WRONG_TYPE, **log_context)


class TokenRevokedError(InvalidTokenError):
    def __init__(self, **log_context: Any):
        super().__init__(ErrorMessages.TOKEN_REVOKED, **log_context)


class InvalidCredentialsError(UnauthorizedError):
    """
    Login failed. Unknown identifiers and wrong passwords share this error
    so responses do not reveal which accounts exist.
    """

    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self, detail: str = ErrorMessages.INVALID_CREDENTIALS, **log_context: Any):
        super().__init__(detail, **log_context)


# 403


class ForbiddenError(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCode.FORBIDDEN

    def __init__(
        self,
        action: str | None = None,
        code: int | None = None,
        detail: str | None = None,
        **log_context: Any,
    ):
        if detail is None:
            detail = f"Not allowed to {action}" if action else ErrorMessages.INSUFFICIENT_PERMISSIONS
        super().__init__(detail, code, action=action, **log_context)


class InsufficientRoleError(ForbiddenError):
    def __init__(self, required_roles: list[str], **log_context: Any):
        super().__init__(
            f"perform this action (requires role: {', '.join(required_roles)})",
            required_roles=required_roles,
            **log_context,
        )


class UserDisabledError(ForbiddenError):
    def __init__(self, **log_context: Any):
        super().__init__(code=ErrorCode.USER_DISABLED, detail=ErrorMessages.USER_DISABLED, **log_context)


class UserInactiveError(ForbiddenError):
    def __init__(self, **log_context: Any):
        super().__init__(code=ErrorCode.USER_INACTIVE, detail=ErrorMessages.USER_INACTIVE, **log_context)


# 404


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        detail = f"{entity} not found" if entity_id is None else f"{entity} with ID {entity_id} not found"
        super().__init__(detail, entity=entity, entity_id=entity_id, **log_context)


# 400


class ValidationError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.INVALID_PARAMS

    def __init__(self, detail: str, code: int | None = None, **log_context: Any):
        super().__init__(detail, code, **log_context)


class WrongPasswordError(ValidationError):
    """The current password given to a password change is wrong."""

    code = ErrorCode.WRONG_PASSWORD

    def __init__(self, **log_context: Any):
        super().__init__(ErrorMessages.WRONG_PASSWORD, **log_context)


# 409


class ConflictError(AppException):
    status_code = status.HTTP_409_CONFLICT
    code = ErrorCode.DUPLICATE

    def __init__(self, detail: str, code: int | None = None, **log_context: Any):
        super().__init__(detail, code, **log_context)


class UserExistsError(ConflictError):
    code = ErrorCode.USER_EXISTS

    def __init__(self, **log_context: Any):
        super().__init__(ErrorMessages.USER_EXISTS, **log_context)


# 429 / 503


class RateLimitError(AppException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = ErrorCode.TOO_MANY_ATTEMPTS

    def __init__(
        self,
        retry_after: int,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        self.retry_after = retry_after
        super().__init__(
            detail or f"Too many requests. Try again in {retry_after} seconds.",
            headers={**(headers or {}), "Retry-After": str(retry_after)},
            retry_after=retry_after,
            **log_context,
        )


class ServiceUnavailableError(AppException):
    """A backing service is down. Authorization decisions that need it fail closed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    log_level = logging.ERROR

    def __init__(
        self,
        service: str,
        detail: str = ErrorMessages.STORE_UNAVAILABLE,
        retry_after: int | None = None,
        **log_context: Any,
    ):
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(detail, headers=headers, service=service, **log_context)
