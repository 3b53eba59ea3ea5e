"""
Services Package

Response caching and release metrics built on the store connection.
"""

from .metrics_aggregator import MetricsAggregator, parse_metric_value
from .metrics_setup import MetricsSetup
from .redis_manager import RedisManager, close_redis_manager, get_redis_manager
from .response_cache import ResponseCache

__all__ = [
    "MetricsAggregator",
    "MetricsSetup",
    "RedisManager",
    "ResponseCache",
    "close_redis_manager",
    "get_redis_manager",
    "parse_metric_value",
]
