import asyncio

import pytest
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from update_cache.core.error_codes import RedisErrorCode
from update_cache.core.exceptions import (
    StoreNotConfiguredException,
    StoreNotReadyException,
    StoreOperationException,
)
from update_cache.stores.redis_client import ConnectionState, HandleRole, StoreConnection
from update_cache.stores.safe_invoke import StoreBatch, StoreCommand, StoreResult, safe_invoke


@pytest.fixture
def connection(redis_settings, fake_server) -> StoreConnection:
    return StoreConnection(redis_settings, client_factory=fake_server.client)


def test_store_result_value_or() -> None:
    assert StoreResult.success(3).value_or(0) == 3
    assert StoreResult.failure(StoreNotReadyException("down")).value_or(0) == 0


def test_batch_collects_commands_in_order() -> None:
    batch = StoreBatch().hincrby("h", "a", 1).hset("c", "client", "v1")

    assert len(batch) == 2
    assert batch.commands == [
        (StoreCommand.HINCRBY, ("h", "a", 1)),
        (StoreCommand.HSET, ("c", "client", "v1")),
    ]


@pytest.mark.asyncio
async def test_returns_reply_when_ready(connection, fake_server) -> None:
    await connection.start()
    await safe_invoke(connection, HandleRole.OPS, StoreCommand.SET, "k", "v")

    result = await safe_invoke(connection, HandleRole.OPS, StoreCommand.GET, "k")

    assert result.ok
    assert result.value == "v"
    await connection.close()


@pytest.mark.asyncio
async def test_disabled_store_fails_without_io(disabled_settings) -> None:
    connection = StoreConnection(disabled_settings)

    result = await safe_invoke(connection, HandleRole.OPS, StoreCommand.GET, "k")

    assert isinstance(result.error, StoreNotConfiguredException)
    assert result.error.error_code == RedisErrorCode.NOT_CONFIGURED


@pytest.mark.asyncio
async def test_first_command_connects_without_start(connection, fake_server) -> None:
    assert connection.mode.ops.state is ConnectionState.IDLE

    result = await safe_invoke(connection, HandleRole.OPS, StoreCommand.SET, "k", "v")

    assert result.ok
    assert connection.mode.ops.is_ready
    assert len(fake_server.commands("ping")) == 1
    await connection.close()


@pytest.mark.asyncio
async def test_concurrent_first_commands_share_one_connect(connection, fake_server) -> None:
    results = await asyncio.gather(
        *(safe_invoke(connection, HandleRole.OPS, StoreCommand.GET, "k") for _ in range(4))
    )

    assert all(result.ok for result in results)
    assert len(fake_server.commands("ping")) == 1
    await connection.close()


@pytest.mark.asyncio
async def test_unreachable_handle_fails_fast(connection, fake_server) -> None:
    fake_server.fail(None, "ping")

    result = await safe_invoke(connection, HandleRole.OPS, StoreCommand.GET, "k")

    assert isinstance(result.error, StoreNotReadyException)
    assert fake_server.commands("get") == []
    assert connection.mode.ops.is_reconnecting
    await connection.close()


@pytest.mark.asyncio
async def test_command_error_keeps_the_handle_ready(connection, fake_server) -> None:
    await connection.start()
    fake_server.fail(ResponseError("WRONGTYPE"), "hget")

    result = await safe_invoke(connection, HandleRole.OPS, StoreCommand.HGET, "k", "f")

    assert isinstance(result.error, StoreOperationException)
    assert result.error.details["command"] == "hget"
    assert connection.mode.ops.state is ConnectionState.READY
    await connection.close()


@pytest.mark.asyncio
async def test_transport_error_marks_the_handle_failed(connection, fake_server) -> None:
    await connection.start()
    fake_server.fail(RedisTimeoutError("Timeout reading from socket"))

    result = await safe_invoke(connection, HandleRole.METRICS, StoreCommand.GET, "k")

    assert isinstance(result.error, StoreOperationException)
    assert connection.mode.metrics.state is ConnectionState.FAILED
    assert connection.mode.metrics.is_reconnecting
    assert connection.mode.ops.state is ConnectionState.READY
    await connection.close()


@pytest.mark.asyncio
async def test_batch_commits_every_command(connection, fake_server) -> None:
    await connection.start()
    batch = StoreBatch().hincrby("h", "a", 2).hincrby("h", "b", -1).hset("c", "x", "v1")

    result = await safe_invoke(connection, HandleRole.METRICS, StoreCommand.EXEC_BATCH, batch)

    assert result.value == [2, -1, 1]
    assert fake_server.keyspace(1)["h"] == {"a": "2", "b": "-1"}
    assert fake_server.keyspace(1)["c"] == {"x": "v1"}
    await connection.close()
