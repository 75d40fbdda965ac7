"""
Helpers shared by every router.
"""

from fastapi import Request

from rest_api.core.container import Container
from .pagination import Pagination, get_pagination


def get_container(request: Request) -> Container:
    """FastAPI dependency returning the application container."""
    return request.app.state.container


def get_client_ip(request: Request) -> str:
    """Direct peer address; proxies must be handled by the ASGI server's forwarded-headers support."""
    if request.client is None:
        return "unknown"
    return request.client.host


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "")[:255]


__all__ = ["Pagination", "get_pagination", "get_container", "get_client_ip", "get_user_agent"]
