"""
API Version 1 Package

Version 1 of the update-cache API endpoints.
"""

from fastapi import APIRouter

from .endpoints import health_router

router = APIRouter()
router.include_router(health_router, tags=["health"])

__all__ = ["router"]
