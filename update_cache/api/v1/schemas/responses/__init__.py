"""
API v1 Response Schemas
"""

from .health_response import HealthResponse, StoreHealth

__all__ = ["HealthResponse", "StoreHealth"]
