"""
limit/offset query parameters for the admin listings.

    @router.get("/admin/users")
    def list_users(pagination: Pagination = Depends(get_pagination)):
        ...
"""

from dataclasses import dataclass

from fastapi import Query

from shared.config.constants import Limits


@dataclass(frozen=True)
class Pagination:
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0


def get_pagination(
    limit: int = Query(Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> Pagination:
    # Query bounds already reject out-of-range values with a 400
    return Pagination(limit=limit, offset=offset)
