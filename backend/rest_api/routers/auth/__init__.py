"""
Authentication routers - /api/v1/auth/* and /api/v1/verification/*
Handles registration, login, logout, token refresh, password changes and
one-time email codes.
"""

from .routes import router
from .verification import router as verification_router

__all__ = ["router", "verification_router"]
