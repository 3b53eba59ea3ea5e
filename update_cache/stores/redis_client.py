"""
Redis Client Manager

Connection management for the two logical store connections used by
update-cache: "ops" for the response cache and "metrics" for release
counters, each bound to its own logical database on the same server.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Dict, Optional, Tuple, Union

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff, NoBackoff
from redis.exceptions import RedisError

from update_cache.core.config import Settings, settings
from update_cache.core.error_codes import RedisErrorCode
from update_cache.core.exceptions import RedisException, StoreNotConfiguredException
from update_cache.core.logger import get_logger
from update_cache.stores.redis_commands import RedisCommands

logger = get_logger(__name__)

# First reconnect delay in seconds; doubles per attempt up to redis__retry_max_delay
RECONNECT_BASE_DELAY = 0.1


class ConnectionState(StrEnum):
    """Lifecycle of a single store handle."""

    UNCONFIGURED = "unconfigured"
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class HandleRole(StrEnum):
    """Which logical connection a command runs on."""

    OPS = "ops"
    METRICS = "metrics"


ClientFactory = Callable[[Settings, int], RedisCommands]


def _build_backoff(config: Settings) -> ExponentialBackoff:
    return ExponentialBackoff(
        cap=config.redis__retry_max_delay / 1000, base=RECONNECT_BASE_DELAY
    )


def create_redis_client(config: Settings, db: int) -> redis.Redis:
    """
    Build a redis-py asyncio client for one logical database.

    The client does not connect until its first command. It never retries on
    its own: reconnecting is owned by ``StoreHandle``, so ``redis__max_attempts``
    bounds the total number of connection attempts per cycle.

    Args:
        config: Settings with host and port present
        db: Logical database index the connection pool is bound to

    Returns:
        redis.Redis: Unconnected client
    """
    client_kwargs = {
        "host": config.redis__host,
        "port": config.redis__port,
        "db": db,
        "password": config.redis_password,
        "encoding": "utf-8",
        "decode_responses": True,
        "socket_connect_timeout": config.redis__connect_timeout,
        "socket_timeout": config.redis__socket_timeout,
        "retry": Retry(NoBackoff(), retries=0),
    }

    if config.redis__tls:
        # Certificates are verified against the system trust store
        client_kwargs["ssl"] = True
        client_kwargs["ssl_cert_reqs"] = "required"

    return redis.Redis(**client_kwargs)


class StoreHandle:
    """
    One logical connection plus its readiness state.

    The first connection attempt happens on ``start()`` or on the first command,
    whichever comes first. Commands fail fast while the connection is down.
    """

    def __init__(
        self,
        role: HandleRole,
        client: RedisCommands,
        max_attempts: int,
        backoff: ExponentialBackoff,
    ) -> None:
        self.role = role
        self.client = client
        self.state = ConnectionState.IDLE
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._start_task: Optional[asyncio.Future[bool]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    @property
    def is_reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def connect(self) -> bool:
        """
        Make a single connection attempt.

        Returns:
            bool: True when the store answered PING
        """
        if self.state is ConnectionState.CLOSED:
            return False

        self.state = ConnectionState.CONNECTING
        try:
            await self.client.ping()
        except (RedisError, OSError) as e:
            if self.state is not ConnectionState.CLOSED:
                self.state = ConnectionState.FAILED
            logger.warning("Redis %s client error: %s", self.role, str(e))
            return False

        if self.state is ConnectionState.CLOSED:
            return False
        self.state = ConnectionState.READY
        logger.info("Redis %s connection established", self.role)
        return True

    async def start(self) -> bool:
        """
        First connection attempt; keeps retrying in the background on failure.

        Concurrent and repeated callers share the same first attempt.
        """
        if self._start_task is None:
            self._start_task = asyncio.ensure_future(self._first_connect())
        return await asyncio.shield(self._start_task)

    async def _first_connect(self) -> bool:
        if await self.connect():
            return True
        self.schedule_reconnect(attempts_used=1)
        return False

    def schedule_reconnect(self, attempts_used: int = 0) -> None:
        """Start a reconnect cycle unless one is already running or the handle is closed."""
        if self.state is ConnectionState.CLOSED or self.is_reconnecting:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect(attempts_used)
        )

    async def _reconnect(self, attempts_used: int) -> None:
        for attempt in range(attempts_used + 1, self._max_attempts + 1):
            await asyncio.sleep(self._backoff.compute(attempt))
            if self.state is ConnectionState.CLOSED:
                return
            logger.info(
                "Reconnecting Redis %s client (attempt %d/%d)",
                self.role,
                attempt,
                self._max_attempts,
            )
            if await self.connect():
                return

        if self.state is not ConnectionState.CLOSED:
            logger.error(
                "Redis %s client gave up after %d attempts",
                self.role,
                self._max_attempts,
            )

    def mark_failed(self, exc: BaseException) -> None:
        """Record a transport failure seen by a command and begin reconnecting."""
        if self.state is ConnectionState.CLOSED:
            return
        if self.state is ConnectionState.READY:
            logger.warning("Redis %s connection lost: %s", self.role, str(exc))
        self.state = ConnectionState.FAILED
        self.schedule_reconnect()

    async def ping(self) -> None:
        """
        Liveness probe.

        Raises:
            RedisException: If the store did not answer
        """
        try:
            await self.client.ping()
        except (RedisError, OSError) as e:
            self.mark_failed(e)
            raise RedisException(
                f"Redis {self.role} client did not answer PING: {str(e)}",
                RedisErrorCode.CONNECTION_FAILED,
                details={"handle": str(self.role)},
                cause=e,
            ) from e

        if self.state in (
            ConnectionState.IDLE,
            ConnectionState.CONNECTING,
            ConnectionState.FAILED,
        ):
            self.state = ConnectionState.READY

    async def close(self) -> None:
        """Stop reconnecting and release the connection pool."""
        self.state = ConnectionState.CLOSED

        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
            self._reconnect_task = None

        try:
            await self.client.aclose()
        except (RedisError, OSError) as e:
            logger.debug("Ignoring error while closing Redis %s client: %s", self.role, e)


@dataclass(frozen=True)
class Disabled:
    """No store configured; every operation resolves to its benign default."""

    reason: str


@dataclass(frozen=True)
class Enabled:
    """Both handles exist."""

    ops: StoreHandle
    metrics: StoreHandle

    def handle(self, role: HandleRole) -> StoreHandle:
        return self.ops if role is HandleRole.OPS else self.metrics

    def handles(self) -> Tuple[StoreHandle, StoreHandle]:
        return self.ops, self.metrics


ConnectionMode = Union[Disabled, Enabled]


class StoreConnection:
    """
    The process-wide pair of store handles.

    Constructed once from settings. Without a host and port it is permanently
    disabled and never touches the network.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config or settings
        self.mode: ConnectionMode

        if not self.config.redis_enabled:
            logger.warning(
                "No REDIS_HOST or REDIS_PORT configured; response cache and metrics are disabled"
            )
            self.mode = Disabled(reason="REDIS_HOST or REDIS_PORT not configured")
            return

        factory = client_factory or create_redis_client
        backoff = _build_backoff(self.config)
        self.mode = Enabled(
            ops=StoreHandle(
                HandleRole.OPS,
                factory(self.config, self.config.redis__db),
                self.config.redis__max_attempts,
                backoff,
            ),
            metrics=StoreHandle(
                HandleRole.METRICS,
                factory(self.config, self.config.metrics__db),
                self.config.redis__max_attempts,
                backoff,
            ),
        )

    @property
    def is_enabled(self) -> bool:
        return isinstance(self.mode, Enabled)

    def require_enabled(self) -> Enabled:
        """
        Raises:
            StoreNotConfiguredException: If the store is disabled
        """
        if isinstance(self.mode, Disabled):
            raise StoreNotConfiguredException(
                "Redis manager is not enabled", details={"reason": self.mode.reason}
            )
        return self.mode

    def states(self) -> Dict[str, str]:
        """Current state of each handle, for health reporting."""
        if isinstance(self.mode, Disabled):
            return {
                role.value: ConnectionState.UNCONFIGURED.value for role in HandleRole
            }
        return {handle.role.value: handle.state.value for handle in self.mode.handles()}

    async def start(self) -> None:
        """Run the first connection attempt on both handles. Never raises."""
        if isinstance(self.mode, Disabled):
            return
        await asyncio.gather(*(handle.start() for handle in self.mode.handles()))

    async def check_health(self) -> None:
        """
        PING both handles.

        Raises:
            StoreNotConfiguredException: If the store is disabled
            RedisException: If either handle did not answer
        """
        store = self.require_enabled()
        await asyncio.gather(store.ops.ping(), store.metrics.ping())

    async def close(self) -> None:
        """Close both handles. Safe to call more than once."""
        if isinstance(self.mode, Disabled):
            return
        await asyncio.gather(*(handle.close() for handle in self.mode.handles()))
        logger.info("Redis connections closed")
