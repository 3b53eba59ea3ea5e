import asyncio

import pytest
from redis.exceptions import ResponseError

from update_cache.core.exceptions import MetricsSetupException, StoreNotConfiguredException
from update_cache.services.metrics_setup import HEALTH_KEY, MetricsSetup
from update_cache.stores.redis_client import StoreConnection


@pytest.fixture
def connection(redis_settings, fake_server) -> StoreConnection:
    return StoreConnection(redis_settings, client_factory=fake_server.client)


@pytest.mark.asyncio
async def test_setup_selects_and_writes_health_key(connection, fake_server) -> None:
    await connection.start()
    setup = MetricsSetup(connection, metrics_db=1)

    result = await setup.ensure()

    assert result.ok
    assert setup.is_complete
    assert fake_server.commands("select") == [(1, (1,))]
    assert fake_server.keyspace(1)[HEALTH_KEY] == HEALTH_KEY
    await connection.close()


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_attempt(connection, fake_server) -> None:
    await connection.start()
    setup = MetricsSetup(connection, metrics_db=1)

    results = await asyncio.gather(*(setup.ensure() for _ in range(5)))

    assert all(result.ok for result in results)
    assert len(fake_server.commands("select")) == 1
    assert len(fake_server.commands("set")) == 1
    await connection.close()


@pytest.mark.asyncio
async def test_completed_setup_is_not_repeated(connection, fake_server) -> None:
    await connection.start()
    setup = MetricsSetup(connection, metrics_db=1)

    await setup.ensure()
    await setup.ensure()

    assert len(fake_server.commands("select")) == 1
    await connection.close()


@pytest.mark.asyncio
async def test_failed_attempt_is_retried_by_the_next_caller(connection, fake_server) -> None:
    await connection.start()
    setup = MetricsSetup(connection, metrics_db=1)
    fake_server.fail(ResponseError("READONLY You can't write against a read only replica."), "set")

    failed = await setup.ensure()

    assert not failed.ok
    assert isinstance(failed.error, MetricsSetupException)
    assert not setup.is_complete

    fake_server.recover()
    retried = await setup.ensure()

    assert retried.ok
    assert setup.is_complete
    assert len(fake_server.commands("select")) == 2
    await connection.close()


@pytest.mark.asyncio
async def test_concurrent_callers_all_see_a_failure(connection, fake_server) -> None:
    await connection.start()
    setup = MetricsSetup(connection, metrics_db=1)
    fake_server.fail(ResponseError("ERR DB index is out of range"), "select")

    results = await asyncio.gather(*(setup.ensure() for _ in range(3)))

    assert all(not result.ok for result in results)
    assert len(fake_server.commands("select")) == 1
    await connection.close()


@pytest.mark.asyncio
async def test_setup_fails_when_store_is_disabled(disabled_settings) -> None:
    setup = MetricsSetup(StoreConnection(disabled_settings), metrics_db=1)

    result = await setup.ensure()

    assert isinstance(result.error, StoreNotConfiguredException)
