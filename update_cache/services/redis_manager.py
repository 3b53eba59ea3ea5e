"""
Redis Manager

Single entry point the API layer uses for response caching and release
metrics. Every method except ``check_health`` resolves to a benign default
when the store is missing, unreachable or misbehaving.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional, Union

from update_cache.core.config import Settings, settings
from update_cache.core.logger import get_logger
from update_cache.models.cacheable_response import CacheableResponse
from update_cache.models.deployment import DeploymentMetrics
from update_cache.services.metrics_aggregator import MetricsAggregator
from update_cache.services.metrics_setup import MetricsSetup
from update_cache.services.response_cache import ResponseCache
from update_cache.stores.redis_client import ClientFactory, StoreConnection

logger = get_logger(__name__)


class RedisManager:
    """
    Response cache and metrics aggregation over one store connection.

    Args:
        config: Settings to build the connection from (defaults to global settings)
        client_factory: Builds a client for a logical database; tests pass an
            in-memory implementation
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config or settings
        self.connection = StoreConnection(self.config, client_factory)
        self.cache = ResponseCache(self.connection, self.config.cache__default_ttl)
        self.metrics_setup = MetricsSetup(self.connection, self.config.metrics__db)
        self.metrics = MetricsAggregator(self.connection, self.metrics_setup)

    @property
    def is_enabled(self) -> bool:
        return self.connection.is_enabled

    async def start(self) -> None:
        """Open both connections. Failures are logged and retried in the background."""
        await self.connection.start()

    async def check_health(self) -> None:
        """
        PING both connections.

        Raises:
            StoreNotConfiguredException: If the store is disabled
            RedisException: If either connection did not answer
        """
        await self.connection.check_health()

    def connection_states(self) -> Dict[str, str]:
        return self.connection.states()

    # Response cache

    async def get_cached_response(
        self, expiry_key: str, url: str
    ) -> Optional[CacheableResponse]:
        return await self.cache.get(expiry_key, url)

    async def set_cached_response(
        self,
        expiry_key: str,
        url: str,
        response: Union[CacheableResponse, Mapping[str, Any]],
    ) -> None:
        await self.cache.set(expiry_key, url, response)

    async def invalidate_cache(self, expiry_key: str) -> None:
        await self.cache.invalidate(expiry_key)

    # Metrics

    async def increment_label_status_count(
        self, deployment_key: str, label: str, status: str
    ) -> None:
        await self.metrics.increment_label_status_count(deployment_key, label, status)

    async def record_update(
        self,
        current_deployment_key: str,
        current_label: str,
        previous_deployment_key: Optional[str] = None,
        previous_label: Optional[str] = None,
    ) -> None:
        await self.metrics.record_update(
            current_deployment_key, current_label, previous_deployment_key, previous_label
        )

    async def get_metrics_with_deployment_key(
        self, deployment_key: str
    ) -> Optional[DeploymentMetrics]:
        return await self.metrics.get_metrics_with_deployment_key(deployment_key)

    async def clear_metrics_for_deployment_key(self, deployment_key: str) -> None:
        await self.metrics.clear_metrics_for_deployment_key(deployment_key)

    async def remove_deployment_key_client_active_label(
        self, deployment_key: str, client_unique_id: str
    ) -> None:
        await self.metrics.remove_deployment_key_client_active_label(
            deployment_key, client_unique_id
        )

    async def get_current_active_label(
        self, deployment_key: str, client_unique_id: str
    ) -> Optional[str]:
        """Deprecated: per-client label tracking."""
        return await self.metrics.get_current_active_label(deployment_key, client_unique_id)

    async def update_active_app_for_client(
        self,
        deployment_key: str,
        client_unique_id: str,
        to_label: str,
        from_label: Optional[str] = None,
    ) -> None:
        """Deprecated: per-client label tracking."""
        await self.metrics.update_active_app_for_client(
            deployment_key, client_unique_id, to_label, from_label
        )

    async def close(self) -> None:
        """Close both connections. Never raises."""
        try:
            await self.connection.close()
        except Exception as e:
            logger.warning("Error while closing Redis manager: %s", e)


class _RedisManagerHolder:
    """Process-wide RedisManager singleton."""

    def __init__(self) -> None:
        self._manager: Optional[RedisManager] = None
        self._lock = asyncio.Lock()

    @property
    def manager(self) -> Optional[RedisManager]:
        return self._manager

    def get_manager_sync(self) -> RedisManager:
        """
        Get the manager, creating it on first use.

        The connections are not opened until ``start()`` is awaited.
        """
        if self._manager is None:
            self._manager = RedisManager()
        return self._manager

    async def close_manager(self) -> None:
        async with self._lock:
            if self._manager:
                await self._manager.close()
                self._manager = None


_holder = _RedisManagerHolder()


def get_redis_manager() -> RedisManager:
    """
    Get the process RedisManager.

    Note:
        The manager may not be connected yet; call ``await manager.start()``
        during application startup.
    """
    return _holder.get_manager_sync()


async def close_redis_manager() -> None:
    """Close the process RedisManager and forget it."""
    await _holder.close_manager()
