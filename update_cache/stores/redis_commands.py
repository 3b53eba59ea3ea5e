"""
Redis Command Interface

The exact set of store commands update-cache relies on. ``redis.asyncio.Redis``
satisfies it; tests provide an in-memory implementation.
"""

from typing import Any, Dict, List, Optional, Protocol


class BatchCommands(Protocol):
    """Commands queued inside a MULTI/EXEC transaction."""

    def hincrby(self, name: str, key: str, amount: int = 1) -> Any: ...

    def hset(
        self, name: str, key: Optional[str] = None, value: Optional[str] = None
    ) -> Any: ...

    async def execute(self, raise_on_error: bool = True) -> List[Any]: ...


class RedisCommands(Protocol):
    """Single commands issued against one logical connection."""

    async def ping(self) -> Any: ...

    async def select(self, index: int) -> Any: ...

    async def exists(self, *names: str) -> int: ...

    async def delete(self, *names: str) -> int: ...

    async def expire(self, name: str, time: int) -> bool: ...

    async def set(self, name: str, value: str) -> Any: ...

    async def get(self, name: str) -> Optional[str]: ...

    async def hset(
        self, name: str, key: Optional[str] = None, value: Optional[str] = None
    ) -> int: ...

    async def hget(self, name: str, key: str) -> Optional[str]: ...

    async def hgetall(self, name: str) -> Dict[str, str]: ...

    async def hdel(self, name: str, *keys: str) -> int: ...

    async def hincrby(self, name: str, key: str, amount: int = 1) -> int: ...

    def pipeline(self, transaction: bool = True) -> BatchCommands: ...

    async def aclose(self) -> None: ...
