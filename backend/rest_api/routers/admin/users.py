"""
Account administration endpoints.

Thin router that delegates to UserService.
"""

from rest_api.routers.admin._base import (
    Container,
    Depends,
    Identity,
    Pagination,
    admin_router,
    get_container,
    get_pagination,
    require_admin,
)
from shared.utils.schemas import AccountStatusType, AdminUserUpdate, Role, UserInfo


router = admin_router(tags=["admin-users"])


@router.get("/users", response_model=list[UserInfo])
def list_users(
    role: Role | None = None,
    status: AccountStatusType | None = None,
    pagination: Pagination = Depends(get_pagination),
    container: Container = Depends(get_container),
) -> list[UserInfo]:
    """
    List accounts, optionally filtered by role and status.
    Supports pagination via limit/offset parameters (default: 50, max: 200).
    """
    users = container.user_service.list_users(
        role=role,
        status=status,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [UserInfo.model_validate(u) for u in users]


@router.patch("/users/{user_id}", response_model=UserInfo)
def update_user(
    user_id: int,
    body: AdminUserUpdate,
    identity: Identity = Depends(require_admin),
    container: Container = Depends(get_container),
) -> UserInfo:
    """
    Change an account's role or status.

    A banned account cannot log in or refresh; with session revocation
    enabled its outstanding access tokens stop working immediately.
    """
    user = container.user_service.admin_update(identity.user_id, user_id, body)
    return UserInfo.model_validate(user)
