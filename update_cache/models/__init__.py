"""
Models Package

Value types exchanged with the cache and metrics store.
"""

from .cacheable_response import CacheableResponse
from .deployment import ACTIVE, DeploymentMetrics, DeploymentStatus

__all__ = [
    "ACTIVE",
    "CacheableResponse",
    "DeploymentMetrics",
    "DeploymentStatus",
]
