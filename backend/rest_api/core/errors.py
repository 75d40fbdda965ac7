"""
Exception handlers.

Every failure leaves the API as ``{"code": <int>, "message": <str>}``;
rate-limit failures add ``retry_after`` (seconds).
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from shared.config.constants import ErrorCode
from shared.config.logging import rest_api_logger as logger
from shared.security.rate_limit import rate_limit_exceeded_handler
from shared.utils.exceptions import AppException, RateLimitError

# Codes for plain HTTPExceptions raised by FastAPI/Starlette themselves
STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.INVALID_PARAMS,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.INVALID_PARAMS,
    status.HTTP_409_CONFLICT: ErrorCode.DUPLICATE,
    422: ErrorCode.INVALID_PARAMS,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.TOO_MANY_ATTEMPTS,
}


def error_body(code: int, message: str, **extra) -> dict:
    return {"code": code, "message": message, **extra}


def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    content = error_body(exc.code, exc.detail)
    if isinstance(exc, RateLimitError):
        content["retry_after"] = exc.retry_after
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = STATUS_CODES.get(exc.status_code, ErrorCode.SERVER_ERROR)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"

    logger.info("Request validation failed", path=request.url.path, errors=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ErrorCode.INVALID_PARAMS, message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
