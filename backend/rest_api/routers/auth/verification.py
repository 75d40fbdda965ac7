"""
One-time email code router.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from rest_api.core.container import Container
from rest_api.routers._common import get_container
from shared.config.settings import settings
from shared.security.rate_limit import limiter
from shared.utils.schemas import SendCodeRequest


router = APIRouter(prefix="/api/v1/verification", tags=["verification"])


class SendCodeResponse(BaseModel):
    message: str
    expires_at: datetime


@router.post("/send", response_model=SendCodeResponse)
@limiter.limit(settings.verification_send_rate)
def send_code(
    request: Request,
    response: Response,
    body: SendCodeRequest,
    container: Container = Depends(get_container),
) -> SendCodeResponse:
    """
    Email a 6-digit code for registration, login or password reset.

    Requesting a new code invalidates every earlier code for the address.
    The response is the same whether or not an account exists.
    """
    expires_at = container.verification_service.send_code(str(body.email), body.purpose)
    return SendCodeResponse(message="Verification code sent", expires_at=expires_at)
