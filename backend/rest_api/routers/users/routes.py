"""
Profile endpoints.
"""

from fastapi import APIRouter, Depends

from rest_api.core.container import Container
from rest_api.routers._common import get_container
from shared.security.auth import Identity, current_identity, require_committee
from shared.utils.schemas import ProfileUpdate, UserInfo


router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.patch("/me", response_model=UserInfo)
def update_my_profile(
    body: ProfileUpdate,
    identity: Identity = Depends(current_identity),
    container: Container = Depends(get_container),
) -> UserInfo:
    """
    Update the caller's own profile.

    Only real_name, major, class, phone and avatar are accepted; any other
    field is rejected with 400.
    """
    return UserInfo.model_validate(container.user_service.update_profile(identity.user_id, body))


@router.get("/{user_id}", response_model=UserInfo)
def get_user(
    user_id: int,
    identity: Identity = Depends(require_committee),
    container: Container = Depends(get_container),
) -> UserInfo:
    """Look up any account. Committee members and administrators only."""
    return UserInfo.model_validate(container.user_service.get_profile(user_id))
