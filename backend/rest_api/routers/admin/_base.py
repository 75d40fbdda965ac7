"""
Shared dependencies for admin routers.

Every admin endpoint requires the admin role; the router-level dependency
below enforces it before any route body runs.
"""

from fastapi import APIRouter, Depends

from rest_api.core.container import Container
from rest_api.routers._common import Pagination, get_container, get_pagination
from shared.security.auth import Identity, require_admin


def admin_router(tags: list[str]) -> APIRouter:
    """APIRouter whose every route is gated on the admin role."""
    return APIRouter(tags=tags, dependencies=[Depends(require_admin)])


__all__ = [
    "Container",
    "Depends",
    "Identity",
    "Pagination",
    "admin_router",
    "get_container",
    "get_pagination",
    "require_admin",
]
