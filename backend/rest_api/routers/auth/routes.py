"""
Authentication router.
Handles registration, login, token refresh, logout and passwords.
"""

from fastapi import APIRouter, Depends, Header, Request, Response

from rest_api.core.container import Container
from rest_api.routers._common import get_client_ip, get_container, get_user_agent
from rest_api.services.auth_service import LoginResult
from shared.config.logging import auth_logger as logger, mask_email
from shared.config.settings import settings
from shared.security.auth import Identity, current_identity, get_bearer_token
from shared.security.rate_limit import limiter
from shared.utils.exceptions import AppException, RateLimitError
from shared.utils.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetRequest,
    RefreshTokenRequest,
    RegisterRequest,
    UserInfo,
)


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _login_response(result: LoginResult) -> LoginResponse:
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
        user=UserInfo.model_validate(result.user),
    )


@router.post("/register", response_model=UserInfo, status_code=201)
def register(
    body: RegisterRequest,
    container: Container = Depends(get_container),
) -> UserInfo:
    """Create a student account. Username and email must both be unused."""
    user = container.auth_service.register(body)
    logger.info("User registered", user_id=user.id, email=mask_email(user.email))
    return UserInfo.model_validate(user)


@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    container: Container = Depends(get_container),
) -> LoginResponse:
    """
    Authenticate and return tokens.

    Password login returns an access + refresh pair. Email-code login
    (body carries `code`) returns an access token only.

    Every attempt counts against the per-address and per-identifier limits,
    whether or not it succeeds. X-RateLimit-* headers describe the
    per-address counter.
    """
    ip = get_client_ip(request)
    decision = container.login_limiter.check(ip, body.identifier)
    if not decision.allowed:
        raise RateLimitError(
            decision.retry_after,
            detail=decision.message,
            headers=decision.headers(),
            scope=decision.scope,
            ip_address=ip,
        )
    limit_headers = decision.headers()
    response.headers.update(limit_headers)

    user_agent = get_user_agent(request)
    try:
        if body.code is not None:
            result = container.auth_service.login_with_code(
                str(body.email), body.code, body.password, ip, user_agent
            )
        else:
            result = container.auth_service.login(
                body.username or str(body.email), body.password, ip, user_agent
            )
    except AppException as e:
        # Error responses are built from the exception, not the injected Response
        e.headers = {**(e.headers or {}), **limit_headers}
        raise

    return _login_response(result)


@router.post("/refresh", response_model=LoginResponse)
@limiter.limit(settings.refresh_rate)
def refresh_token(
    request: Request,
    response: Response,
    body: RefreshTokenRequest,
    container: Container = Depends(get_container),
) -> LoginResponse:
    """Exchange a refresh token for a new token pair."""
    return _login_response(container.auth_service.refresh(body.refresh_token))


@router.post("/logout", response_model=MessageResponse)
def logout(
    authorization: str | None = Header(default=None, alias="Authorization"),
    identity: Identity = Depends(current_identity),
    container: Container = Depends(get_container),
) -> MessageResponse:
    """Revoke the presented access token for the rest of its lifetime."""
    container.auth_service.logout(get_bearer_token(authorization))
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserInfo)
def me(
    identity: Identity = Depends(current_identity),
    container: Container = Depends(get_container),
) -> UserInfo:
    return UserInfo.model_validate(container.auth_service.get_user_info(identity.user_id))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    identity: Identity = Depends(current_identity),
    container: Container = Depends(get_container),
) -> MessageResponse:
    container.auth_service.change_password(identity.user_id, body.old_password, body.new_password)
    return MessageResponse(message="Password changed")


@router.post("/password/reset", response_model=MessageResponse)
@limiter.limit(settings.password_reset_rate)
def reset_password(
    request: Request,
    response: Response,
    body: PasswordResetRequest,
    container: Container = Depends(get_container),
) -> MessageResponse:
    """Set a new password with a code sent for the reset_password purpose."""
    container.auth_service.reset_password(str(body.email), body.code, body.new_password)
    return MessageResponse(message="Password reset")
