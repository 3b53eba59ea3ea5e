from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from update_cache.core.config import Settings
from update_cache.services.redis_manager import RedisManager


class FakeRedisServer:
    """In-memory Redis with logical databases, a manual TTL clock and injectable failures."""

    def __init__(self) -> None:
        self.dbs: Dict[int, Dict[str, Any]] = {}
        self.expiries: Dict[Tuple[int, str], float] = {}
        self.now = 0.0
        self.calls: List[Tuple[int, str, Tuple[Any, ...]]] = []
        self.fail_with: Optional[Exception] = None
        self.failing_commands: Set[str] = set()
        self.clients: List["FakeRedis"] = []

    def client(self, config: Settings, db: int) -> "FakeRedis":
        fake = FakeRedis(self, db)
        self.clients.append(fake)
        return fake

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def fail(self, exc: Optional[Exception] = None, *commands: str) -> None:
        """Make the given commands (or every command) raise until ``recover()``."""
        self.fail_with = exc or RedisConnectionError("Connection refused")
        self.failing_commands = set(commands)

    def recover(self) -> None:
        self.fail_with = None
        self.failing_commands = set()

    def check(self, db: int, command: str, args: Tuple[Any, ...]) -> None:
        self.calls.append((db, command, args))
        if self.fail_with is None:
            return
        if not self.failing_commands or command in self.failing_commands:
            raise self.fail_with

    def commands(self, command: str) -> List[Tuple[int, Tuple[Any, ...]]]:
        return [(db, args) for db, name, args in self.calls if name == command]

    def keyspace(self, db: int) -> Dict[str, Any]:
        data = self.dbs.setdefault(db, {})
        for (expiry_db, key), deadline in list(self.expiries.items()):
            if expiry_db == db and deadline <= self.now:
                data.pop(key, None)
                del self.expiries[(expiry_db, key)]
        return data

    def ttl(self, db: int, key: str) -> Optional[float]:
        deadline = self.expiries.get((db, key))
        return None if deadline is None else deadline - self.now


class FakePipeline:
    def __init__(self, client: "FakeRedis") -> None:
        self.client = client
        self.queued: List[Tuple[str, Tuple[Any, ...]]] = []

    def hincrby(self, name: str, key: str, amount: int = 1) -> "FakePipeline":
        self.queued.append(("hincrby", (name, key, amount)))
        return self

    def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None):
        self.queued.append(("hset", (name, key, value)))
        return self

    async def execute(self, raise_on_error: bool = True) -> List[Any]:
        # Nothing is applied when the transaction itself fails
        self.client.server.check(self.client.db, "exec", tuple(self.queued))
        results = []
        for command, args in self.queued:
            results.append(getattr(self.client, f"_{command}")(*args))
        return results


class FakeRedis:
    """Implements the command interface against a FakeRedisServer."""

    def __init__(self, server: FakeRedisServer, db: int) -> None:
        self.server = server
        self.db = db
        self.closed = False

    def _data(self) -> Dict[str, Any]:
        return self.server.keyspace(self.db)

    def _hash(self, name: str, create: bool = False) -> Optional[Dict[str, str]]:
        data = self._data()
        value = data.get(name)
        if value is None:
            if not create:
                return None
            value = data[name] = {}
        if not isinstance(value, dict):
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return value

    def _hincrby(self, name: str, key: str, amount: int = 1) -> int:
        target = self._hash(name, create=True)
        current = target.get(key, "0")
        try:
            updated = int(current) + amount
        except ValueError:
            raise ResponseError("hash value is not an integer") from None
        target[key] = str(updated)
        return updated

    def _hset(self, name: str, key: str, value: str) -> int:
        target = self._hash(name, create=True)
        is_new = key not in target
        target[key] = value
        return int(is_new)

    async def ping(self) -> bool:
        self.server.check(self.db, "ping", ())
        return True

    async def select(self, index: int) -> bool:
        self.server.check(self.db, "select", (index,))
        self.db = index
        return True

    async def exists(self, *names: str) -> int:
        self.server.check(self.db, "exists", names)
        data = self._data()
        return sum(1 for name in names if name in data)

    async def delete(self, *names: str) -> int:
        self.server.check(self.db, "del", names)
        data = self._data()
        removed = 0
        for name in names:
            if data.pop(name, None) is not None:
                removed += 1
            self.server.expiries.pop((self.db, name), None)
        return removed

    async def expire(self, name: str, time: int) -> bool:
        self.server.check(self.db, "expire", (name, time))
        if name not in self._data():
            return False
        self.server.expiries[(self.db, name)] = self.server.now + time
        return True

    async def set(self, name: str, value: str) -> bool:
        self.server.check(self.db, "set", (name, value))
        self._data()[name] = value
        return True

    async def get(self, name: str) -> Optional[str]:
        self.server.check(self.db, "get", (name,))
        return self._data().get(name)

    async def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None) -> int:
        self.server.check(self.db, "hset", (name, key, value))
        return self._hset(name, key, value)

    async def hget(self, name: str, key: str) -> Optional[str]:
        self.server.check(self.db, "hget", (name, key))
        target = self._hash(name)
        return None if target is None else target.get(key)

    async def hgetall(self, name: str) -> Dict[str, str]:
        self.server.check(self.db, "hgetall", (name,))
        target = self._hash(name)
        return dict(target) if target else {}

    async def hdel(self, name: str, *keys: str) -> int:
        self.server.check(self.db, "hdel", (name, *keys))
        target = self._hash(name)
        if target is None:
            return 0
        removed = sum(1 for key in keys if target.pop(key, None) is not None)
        if not target:
            self._data().pop(name, None)
        return removed

    async def hincrby(self, name: str, key: str, amount: int = 1) -> int:
        self.server.check(self.db, "hincrby", (name, key, amount))
        return self._hincrby(name, key, amount)

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def redis_settings() -> Settings:
    return Settings(
        redis__host="localhost",
        redis__port=6379,
        redis__max_attempts=2,
        redis__retry_max_delay=10,
    )


@pytest.fixture
def disabled_settings() -> Settings:
    return Settings(redis__host=None, redis__port=None)


@pytest.fixture
def fake_server() -> FakeRedisServer:
    return FakeRedisServer()


@pytest_asyncio.fixture
async def manager(redis_settings: Settings, fake_server: FakeRedisServer):
    redis_manager = RedisManager(redis_settings, client_factory=fake_server.client)
    await redis_manager.start()
    yield redis_manager
    await redis_manager.close()
