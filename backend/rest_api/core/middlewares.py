"""
HTTP middlewares: request ids, JSON-only bodies, security headers and a
last-resort handler for unexpected errors.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.constants import ErrorCode
from shared.config.logging import rest_api_logger as logger
from shared.infrastructure.correlation import CorrelationIdMiddleware


def error_body(status_code: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


class RecoveryMiddleware(BaseHTTPMiddleware):
    """
    Unhandled exceptions become a bare 500 with no detail in the body.

    Application errors are rendered by the exception handlers and never get here.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "Unhandled server error",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                exc_info=True,
            )
            return error_body(500, ErrorCode.SERVER_ERROR, "Internal server error")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    # Token-bearing responses live under this prefix and must not be cached
    NO_STORE_PREFIX = "/api/v1/auth"

    STATIC_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    }

    async def dispatch(self, request: Request, call_next):
        # Resolved per request so tests can patch the environment
        from shared.config.settings import settings

        response = await call_next(request)
        response.headers.update(self.STATIC_HEADERS)

        if request.url.path.startswith(self.NO_STORE_PREFIX):
            response.headers["Cache-Control"] = "no-store"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class ContentTypeValidationMiddleware(BaseHTTPMiddleware):
    """Bodies on POST/PUT/PATCH must be JSON; anything else is a 415."""

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type", "")
        if (
            request.method in ("POST", "PUT", "PATCH")
            and content_type
            and not content_type.startswith("application/json")
        ):
            return error_body(415, ErrorCode.INVALID_PARAMS, "Unsupported Media Type. Use application/json")
        return await call_next(request)


def register_middlewares(app: FastAPI) -> None:
    # Starlette runs the last one added first: request ids wrap everything,
    # recovery sits next to the routes
    for middleware in (
        RecoveryMiddleware,
        SecurityHeadersMiddleware,
        ContentTypeValidationMiddleware,
        CorrelationIdMiddleware,
    ):
        app.add_middleware(middleware)
