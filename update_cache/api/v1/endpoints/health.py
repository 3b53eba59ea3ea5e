"""
API Health Check Endpoint

Reports the API and the Redis store behind the response cache and metrics.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from update_cache.api.v1.schemas.responses import HealthResponse, StoreHealth
from update_cache.core.config import settings
from update_cache.core.exceptions import RedisException
from update_cache.core.logger import get_logger
from update_cache.services.redis_manager import RedisManager, get_redis_manager

logger = get_logger(__name__)

router = APIRouter()


def _get_manager(request: Request) -> RedisManager:
    manager = getattr(request.app.state, "redis_manager", None)
    return manager if manager is not None else get_redis_manager()


async def check_redis_health(manager: RedisManager) -> StoreHealth:
    """PING both connections; never raises."""
    if not manager.is_enabled:
        return StoreHealth(status="disabled", connections=manager.connection_states())

    try:
        await manager.check_health()
    except RedisException as e:
        logger.warning("Redis health check failed: %s", e.message)
        return StoreHealth(
            status="unhealthy",
            connections=manager.connection_states(),
            error=e.message,
        )

    return StoreHealth(status="healthy", connections=manager.connection_states())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="API Health Check",
    description="Check the API and the Redis store",
    tags=["health"],
)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    A disabled store is not a failure: the service keeps answering without
    a cache. Only an unreachable configured store marks the service unhealthy.
    """
    components = {
        "api": {
            "status": "healthy",
            "version": settings.api__version,
            "environment": settings.environment,
        }
    }
    overall_healthy = True

    if settings.health__check_redis:
        redis_health = await check_redis_health(_get_manager(request))
        components["redis"] = redis_health.model_dump()
        if redis_health.status == "unhealthy":
            overall_healthy = False

    return HealthResponse(
        status="healthy" if overall_healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.api__version,
        environment=settings.environment,
        components=components,
    )
