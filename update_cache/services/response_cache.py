"""
Response Cache Service

Caches serialized API responses in a Redis hash per expiry key, one field
per request URL. The hash expires as a whole, so deleting or expiring the
expiry key drops every cached URL under it.
"""

from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from update_cache.core.exceptions import CacheDecodeException
from update_cache.core.logger import get_logger
from update_cache.models.cacheable_response import CacheableResponse
from update_cache.stores.redis_client import HandleRole, StoreConnection
from update_cache.stores.safe_invoke import StoreCommand, safe_invoke

logger = get_logger(__name__)


class ResponseCache:
    """Get, set and invalidate cached responses on the ops handle."""

    def __init__(self, connection: StoreConnection, default_ttl: int = 3600) -> None:
        self.connection = connection
        self.default_ttl = default_ttl

    async def _call(self, command: StoreCommand, *args: Any):
        return await safe_invoke(self.connection, HandleRole.OPS, command, *args)

    async def get(self, expiry_key: str, url: str) -> Optional[CacheableResponse]:
        """
        Get a response from cache if possible.

        Args:
            expiry_key: Identifier the response was cached under
            url: The url of the cached request

        Returns:
            The cached response, or None on a miss, a store failure or an
            unreadable payload
        """
        result = await self._call(StoreCommand.HGET, expiry_key, url)
        if not result.ok:
            logger.debug("Cache read skipped for %s: %s", expiry_key, result.error)
            return None

        serialized = result.value
        if not serialized:
            return None

        try:
            return CacheableResponse.model_validate_json(serialized)
        except (ValidationError, ValueError) as e:
            error = CacheDecodeException.wrap(
                e, "Cached response is not valid JSON", expiry_key=expiry_key, url=url
            )
            logger.warning("Ignoring cached entry: %s", error)
            return None

    async def set(
        self,
        expiry_key: str,
        url: str,
        response: Union[CacheableResponse, Mapping[str, Any]],
    ) -> None:
        """
        Cache a response for the given expiry key and url.

        The expiry is attached only when this write creates the hash, so later
        writes never extend its lifetime. EXISTS, HSET and EXPIRE are separate
        commands: two concurrent first writers may both set the expiry.

        Args:
            expiry_key: Identifier that can later be used to expire the response
            url: The url of the request
            response: Response to cache
        """
        try:
            if not isinstance(response, CacheableResponse):
                response = CacheableResponse.model_validate(response)
            serialized = response.to_json()
        except (ValidationError, PydanticSerializationError, TypeError) as e:
            logger.warning("Not caching response for %s: %s", url, e)
            return

        existing = await self._call(StoreCommand.EXISTS, expiry_key)
        if not existing.ok:
            logger.debug("Cache write skipped for %s: %s", expiry_key, existing.error)
            return
        is_new_key = not existing.value

        written = await self._call(StoreCommand.HSET, expiry_key, url, serialized)
        if not written.ok:
            logger.debug("Cache write failed for %s: %s", expiry_key, written.error)
            return

        if is_new_key:
            expired = await self._call(
                StoreCommand.EXPIRE, expiry_key, self.default_ttl
            )
            if not expired.ok:
                logger.debug("Setting expiry failed for %s: %s", expiry_key, expired.error)

    async def invalidate(self, expiry_key: str) -> None:
        """Drop every response cached under the expiry key."""
        if not self.connection.is_enabled:
            return

        result = await self._call(StoreCommand.DEL, expiry_key)
        if not result.ok:
            logger.debug("Cache invalidation failed for %s: %s", expiry_key, result.error)
