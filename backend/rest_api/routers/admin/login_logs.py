"""
Login log endpoints.
"""

from rest_api.routers.admin._base import (
    Container,
    Depends,
    Pagination,
    admin_router,
    get_container,
    get_pagination,
)
from shared.utils.schemas import LoginLogOutput


router = admin_router(tags=["admin-login-logs"])


@router.get("/login-logs", response_model=list[LoginLogOutput])
def list_login_logs(
    user_id: int | None = None,
    success: bool | None = None,
    pagination: Pagination = Depends(get_pagination),
    container: Container = Depends(get_container),
) -> list[LoginLogOutput]:
    """
    Recent login attempts, newest first.

    Filters:
    - user_id: attempts that resolved to this account
    - success: only successful (true) or failed (false) attempts

    Entries are written asynchronously, so an attempt made a moment ago may
    not be listed yet.
    """
    entries = container.user_service.list_login_logs(
        user_id=user_id,
        success=success,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [LoginLogOutput.model_validate(e) for e in entries]
