"""
User profile routers - /api/v1/users/*
"""

from .routes import router

__all__ = ["router"]
