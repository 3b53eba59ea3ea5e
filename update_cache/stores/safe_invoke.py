"""
Safe Invocation

Every store command runs through ``safe_invoke``. It checks that the store is
configured and the target handle is connected (making the first connection
attempt if nothing has tried yet), runs the command, and turns any failure
into a ``StoreResult`` instead of raising. Callers decide what benign default
a failed result maps to.
"""

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Generic, List, Mapping, Optional, Tuple, TypeVar

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from update_cache.core.exceptions import (
    ApplicationException,
    StoreNotConfiguredException,
    StoreNotReadyException,
    StoreOperationException,
)
from update_cache.core.logger import get_logger
from update_cache.stores.redis_client import (
    ConnectionState,
    Disabled,
    HandleRole,
    StoreConnection,
)
from update_cache.stores.redis_commands import BatchCommands, RedisCommands

logger = get_logger(__name__)

T = TypeVar("T")


class StoreCommand(StrEnum):
    """Commands update-cache is allowed to send."""

    PING = "ping"
    SELECT = "select"
    EXISTS = "exists"
    DEL = "del"
    EXPIRE = "expire"
    SET = "set"
    GET = "get"
    HSET = "hset"
    HGET = "hget"
    HGETALL = "hgetall"
    HDEL = "hdel"
    HINCRBY = "hincrby"
    EXEC_BATCH = "exec_batch"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a store call: a value, or the reason there is none."""

    value: Optional[T] = None
    error: Optional[ApplicationException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StoreResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ApplicationException) -> "StoreResult[T]":
        return cls(error=error)

    def value_or(self, default: Optional[T]) -> Optional[T]:
        return self.value if self.ok else default


class StoreBatch:
    """
    Hash commands that commit together in a single MULTI/EXEC.

    Example:
        batch = StoreBatch().hincrby(labels_hash, "v2:Active", 1)
        batch.hincrby(previous_hash, "v1:Active", -1)
        await safe_invoke(connection, HandleRole.METRICS, StoreCommand.EXEC_BATCH, batch)
    """

    def __init__(self) -> None:
        self._commands: List[Tuple[StoreCommand, Tuple[Any, ...]]] = []

    def hincrby(self, name: str, key: str, amount: int) -> "StoreBatch":
        self._commands.append((StoreCommand.HINCRBY, (name, key, amount)))
        return self

    def hset(self, name: str, key: str, value: str) -> "StoreBatch":
        self._commands.append((StoreCommand.HSET, (name, key, value)))
        return self

    @property
    def commands(self) -> List[Tuple[StoreCommand, Tuple[Any, ...]]]:
        return list(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def apply_to(self, pipeline: BatchCommands) -> BatchCommands:
        """Queue every command on a transactional pipeline."""
        for command, args in self._commands:
            if command is StoreCommand.HINCRBY:
                pipeline.hincrby(*args)
            else:
                pipeline.hset(*args)
        return pipeline


async def _execute_batch(client: RedisCommands, batch: StoreBatch) -> List[Any]:
    pipeline = batch.apply_to(client.pipeline(transaction=True))
    return await pipeline.execute()


_DISPATCH: Mapping[StoreCommand, Callable[..., Awaitable[Any]]] = MappingProxyType(
    {
        StoreCommand.PING: lambda client: client.ping(),
        StoreCommand.SELECT: lambda client, index: client.select(index),
        StoreCommand.EXISTS: lambda client, *names: client.exists(*names),
        StoreCommand.DEL: lambda client, *names: client.delete(*names),
        StoreCommand.EXPIRE: lambda client, name, seconds: client.expire(name, seconds),
        StoreCommand.SET: lambda client, name, value: client.set(name, value),
        StoreCommand.GET: lambda client, name: client.get(name),
        StoreCommand.HSET: lambda client, name, key, value: client.hset(name, key, value),
        StoreCommand.HGET: lambda client, name, key: client.hget(name, key),
        StoreCommand.HGETALL: lambda client, name: client.hgetall(name),
        StoreCommand.HDEL: lambda client, name, *keys: client.hdel(name, *keys),
        StoreCommand.HINCRBY: lambda client, name, key, amount: client.hincrby(
            name, key, amount
        ),
        StoreCommand.EXEC_BATCH: _execute_batch,
    }
)


async def safe_invoke(
    connection: StoreConnection,
    role: HandleRole,
    command: StoreCommand,
    *args: Any,
) -> StoreResult[Any]:
    """
    Run one command on the given handle without ever raising.

    Args:
        connection: The process store connection
        role: Handle to run on
        command: Command to send
        *args: Command arguments

    Returns:
        StoreResult: The reply, or a failure carrying
        StoreNotConfiguredException, StoreNotReadyException or StoreOperationException
    """
    mode = connection.mode
    if isinstance(mode, Disabled):
        return StoreResult.failure(
            StoreNotConfiguredException(
                "Redis manager is not enabled", details={"reason": mode.reason}
            )
        )

    handle = mode.handle(role)
    if handle.state is ConnectionState.IDLE:
        await handle.start()

    if not handle.is_ready:
        if handle.state is ConnectionState.FAILED:
            handle.schedule_reconnect()
        return StoreResult.failure(
            StoreNotReadyException(
                "Redis client is not ready",
                details={"handle": str(role), "state": str(handle.state)},
            )
        )

    try:
        reply = await _DISPATCH[command](handle.client, *args)
    except (RedisConnectionError, RedisTimeoutError, OSError) as e:
        handle.mark_failed(e)
        return StoreResult.failure(
            StoreOperationException.wrap(
                e, f"Redis {command} failed", command=str(command), handle=str(role)
            )
        )
    except Exception as e:
        logger.debug("Redis %s on %s failed: %s", command, role, e)
        return StoreResult.failure(
            StoreOperationException.wrap(
                e, f"Redis {command} failed", command=str(command), handle=str(role)
            )
        )

    return StoreResult.success(reply)
