import asyncio

import pytest

from update_cache.core.config import Settings
from update_cache.core.error_codes import RedisErrorCode
from update_cache.core.exceptions import RedisException, StoreNotConfiguredException
from update_cache.stores.redis_client import (
    ConnectionState,
    Disabled,
    Enabled,
    HandleRole,
    StoreConnection,
    create_redis_client,
)


async def _wait_until(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def test_missing_configuration_disables_the_store(disabled_settings, fake_server) -> None:
    connection = StoreConnection(disabled_settings, client_factory=fake_server.client)

    assert isinstance(connection.mode, Disabled)
    assert not connection.is_enabled
    assert connection.states() == {"ops": "unconfigured", "metrics": "unconfigured"}
    assert fake_server.clients == []


def test_handles_are_bound_to_their_databases(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)

    assert isinstance(connection.mode, Enabled)
    assert connection.mode.handle(HandleRole.OPS).client.db == 0
    assert connection.mode.handle(HandleRole.METRICS).client.db == 1


def test_real_client_uses_tls_and_auth() -> None:
    config = Settings(
        redis__host="cache.internal",
        redis__port=6380,
        redis__key="s3cret",
        redis__tls=True,
    )

    client = create_redis_client(config, 1)
    kwargs = client.connection_pool.connection_kwargs

    assert kwargs["host"] == "cache.internal"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 1
    assert kwargs["password"] == "s3cret"
    assert kwargs["ssl_cert_reqs"] == "required"


@pytest.mark.asyncio
async def test_start_marks_both_handles_ready(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)

    await connection.start()

    assert connection.states() == {"ops": "ready", "metrics": "ready"}
    await connection.close()


@pytest.mark.asyncio
async def test_failed_start_keeps_reconnecting(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)
    fake_server.fail()

    await connection.start()

    assert connection.states() == {"ops": "failed", "metrics": "failed"}
    assert connection.mode.ops.is_reconnecting

    fake_server.recover()
    await _wait_until(lambda: connection.mode.ops.is_ready and connection.mode.metrics.is_ready)
    await connection.close()


@pytest.mark.asyncio
async def test_reconnect_gives_up_after_max_attempts(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)
    fake_server.fail(None, "ping")

    await connection.start()
    await _wait_until(lambda: not connection.mode.ops.is_reconnecting)

    ops_pings = [call for call in fake_server.commands("ping") if call[0] == 0]
    assert len(ops_pings) == redis_settings.redis__max_attempts
    assert connection.mode.ops.state is ConnectionState.FAILED
    await connection.close()


@pytest.mark.asyncio
async def test_check_health_raises_when_unreachable(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)
    await connection.start()
    fake_server.fail()

    with pytest.raises(RedisException) as exc_info:
        await connection.check_health()

    assert exc_info.value.error_code == RedisErrorCode.CONNECTION_FAILED
    await connection.close()


@pytest.mark.asyncio
async def test_check_health_requires_configuration(disabled_settings) -> None:
    connection = StoreConnection(disabled_settings)

    with pytest.raises(StoreNotConfiguredException):
        await connection.check_health()


@pytest.mark.asyncio
async def test_close_is_idempotent(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)
    await connection.start()

    await connection.close()
    await connection.close()

    assert connection.states() == {"ops": "closed", "metrics": "closed"}
    assert all(client.closed for client in fake_server.clients)


@pytest.mark.asyncio
async def test_close_stops_reconnecting(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)
    fake_server.fail()
    await connection.start()

    await connection.close()

    assert not connection.mode.ops.is_reconnecting
    assert connection.mode.ops.state is ConnectionState.CLOSED


def test_real_client_does_not_retry_on_its_own(redis_settings) -> None:
    client = create_redis_client(redis_settings, 0)

    retry = client.connection_pool.connection_kwargs["retry"]

    assert retry._retries == 0


@pytest.mark.asyncio
async def test_reconnect_cycle_is_bounded_when_started_lazily(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)
    handle = connection.mode.ops
    fake_server.fail(None, "ping")

    assert handle.state is ConnectionState.IDLE
    assert await handle.start() is False
    await _wait_until(lambda: not handle.is_reconnecting)

    assert len(fake_server.commands("ping")) == redis_settings.redis__max_attempts
    await connection.close()


@pytest.mark.asyncio
async def test_check_health_readies_an_idle_handle(redis_settings, fake_server) -> None:
    connection = StoreConnection(redis_settings, client_factory=fake_server.client)

    await connection.check_health()

    assert connection.states() == {"ops": "ready", "metrics": "ready"}
    await connection.close()
