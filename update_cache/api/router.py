"""
FastAPI router for the update-cache API.

This module defines the main FastAPI router, including the version 1 router.
"""

from fastapi import APIRouter

from update_cache.api.v1 import router as v1_router

router = APIRouter()
router.include_router(v1_router, prefix="/v1")

__all__ = ["router"]
