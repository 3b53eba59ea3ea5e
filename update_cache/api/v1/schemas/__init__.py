"""
API v1 Schemas
"""

from .responses import HealthResponse, StoreHealth

__all__ = ["HealthResponse", "StoreHealth"]
