"""
API Package

Operator HTTP surface for update-cache.
"""

from .factory import create_api
from .router import router

__all__ = ["router", "create_api"]
