import pytest

from update_cache.services import redis_manager as redis_manager_module
from update_cache.services.redis_manager import (
    RedisManager,
    close_redis_manager,
    get_redis_manager,
)


class ExplodingConnection:
    is_enabled = True

    async def close(self) -> None:
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_singleton_is_shared_until_closed(
    monkeypatch: pytest.MonkeyPatch, disabled_settings
) -> None:
    monkeypatch.setattr(
        redis_manager_module, "RedisManager", lambda: RedisManager(disabled_settings)
    )
    monkeypatch.setattr(
        redis_manager_module, "_holder", redis_manager_module._RedisManagerHolder()
    )

    first = get_redis_manager()
    assert get_redis_manager() is first

    await close_redis_manager()

    assert get_redis_manager() is not first


@pytest.mark.asyncio
async def test_close_swallows_errors(disabled_settings) -> None:
    manager = RedisManager(disabled_settings)
    manager.connection = ExplodingConnection()

    await manager.close()


@pytest.mark.asyncio
async def test_manager_uses_configured_ttl(redis_settings, fake_server) -> None:
    config = redis_settings.model_copy(update={"cache__default_ttl": 60})
    manager = RedisManager(config, client_factory=fake_server.client)
    await manager.start()

    await manager.set_cached_response("deploymentKey:abc", "/u", {"statusCode": 200})

    assert fake_server.ttl(0, "deploymentKey:abc") == 60
    await manager.close()
