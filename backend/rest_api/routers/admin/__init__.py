"""
Admin API router - combines all admin sub-routers.

- users: account listing and role/status changes
- login_logs: login attempt history

All routes are prefixed with /api/v1/admin and require the admin role.
"""

from fastapi import APIRouter

from .users import router as users_router
from .login_logs import router as login_logs_router


router = APIRouter(prefix="/api/v1/admin")

router.include_router(users_router)
router.include_router(login_logs_router)

__all__ = ["router"]
