"""
update-cache Package

Response caching and release adoption metrics for an update distribution
service, backed by Redis.
"""

__version__ = "0.1.0"

__all__ = [
    "api",
    "core",
    "models",
    "services",
    "stores",
    "utils",
]
