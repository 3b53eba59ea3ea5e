"""
API Factory

Centralized API setup with middleware, error handling, monitoring and the
Redis manager lifecycle.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from update_cache.api.errors import register_exception_handlers
from update_cache.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from update_cache.api.router import router
from update_cache.core.config import settings
from update_cache.core.logfire_config import initialize_logfire
from update_cache.core.logger import get_logger
from update_cache.services.redis_manager import (
    RedisManager,
    close_redis_manager,
    get_redis_manager,
)

logger = get_logger(__name__)


def setup_logging_middleware(app: FastAPI) -> None:
    """
    Setup request logging and ID middleware.

    Args:
        app: FastAPI application instance
    """
    # Last added runs first, so the request ID is bound before logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    logger.info("Request logging and ID middleware configured")


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Setup global exception handlers.

    Args:
        app: FastAPI application instance
    """
    register_exception_handlers(app)
    logger.info("Global exception handlers configured")


def setup_logfire_instrumentation(app: FastAPI) -> None:
    """
    Setup Logfire configuration and instrumentation.

    Args:
        app: FastAPI application instance
    """
    try:
        results = initialize_logfire(app)
    except Exception as e:
        logger.warning("Failed to initialize Logfire: %s", e)
        return

    if not results["configured"]:
        logger.debug("Logfire initialization skipped (disabled or not available)")
        return

    logger.info("Logfire initialized successfully")
    enabled_instruments = [
        name for name, enabled in results["instrumentation"].items() if enabled
    ]
    if enabled_instruments:
        logger.info(
            "Logfire instrumentation enabled for: %s", ", ".join(enabled_instruments)
        )


def _build_lifespan(manager: Optional[RedisManager]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = manager is None
        redis_manager = get_redis_manager() if owned else manager
        app.state.redis_manager = redis_manager

        await redis_manager.start()
        try:
            yield
        finally:
            if owned:
                await close_redis_manager()
            else:
                await redis_manager.close()

    return lifespan


def create_api(
    title: Optional[str] = None,
    description: Optional[str] = None,
    version: Optional[str] = None,
    docs_url: Optional[str] = None,
    redoc_url: Optional[str] = None,
    enable_logfire: bool = True,
    mount_prefix: str = "",
    manager: Optional[RedisManager] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        title: API title (defaults to api__title)
        description: API description (defaults to api__description)
        version: API version (defaults to api__version)
        docs_url: URL path for Swagger UI (defaults to api__docs_url)
        redoc_url: URL path for ReDoc (defaults to api__redoc_url)
        enable_logfire: Whether to set up Logfire instrumentation
        mount_prefix: Prefix for mounting the API router
        manager: RedisManager to use; the process singleton when omitted

    Returns:
        Configured FastAPI application
    """
    title = title or settings.api__title
    version = version or settings.api__version

    app = FastAPI(
        title=title,
        description=description or settings.api__description,
        version=version,
        docs_url=docs_url or settings.api__docs_url,
        redoc_url=redoc_url or settings.api__redoc_url,
        debug=settings.debug,
        lifespan=_build_lifespan(manager),
    )

    setup_logging_middleware(app)
    setup_exception_handlers(app)

    if enable_logfire:
        setup_logfire_instrumentation(app)

    app.include_router(router, prefix=mount_prefix)

    logger.info("API factory created: %s v%s", title, version)
    return app
