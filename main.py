"""
update-cache - Main Entry Point

Runs the operator API or one-shot maintenance commands against the store.
"""

import argparse
import asyncio
import json
import os
import sys

from fastapi import FastAPI

from update_cache.core.config import settings
from update_cache.core.exceptions import ApplicationException
from update_cache.services.redis_manager import RedisManager
from update_cache.utils.redis_keys import get_deployment_key_hash


def create_app() -> FastAPI:
    """
    Factory function to create FastAPI application.

    Called by uvicorn in factory mode so the maintenance commands never build
    an application.

    Returns:
        FastAPI: Configured application instance
    """
    from update_cache.api.factory import create_api
    from update_cache.core.logger import setup_logging

    setup_logging()
    return create_api(mount_prefix="")


async def run_health() -> int:
    """PING both connections. Returns the process exit code."""
    manager = RedisManager()
    if not manager.is_enabled:
        print("⚠️  Redis is not configured; cache and metrics are disabled")
        return 0

    try:
        await manager.check_health()
    except ApplicationException as e:
        print(f"❌ Redis is unhealthy: {e.message}")
        return 1
    finally:
        await manager.close()

    print("✅ Redis is healthy")
    return 0


async def run_metrics(deployment_key: str) -> int:
    manager = RedisManager()
    await manager.start()
    try:
        metrics = await manager.get_metrics_with_deployment_key(deployment_key)
    finally:
        await manager.close()

    print(json.dumps(metrics or {}, indent=2, sort_keys=True))
    return 0


async def run_clear_metrics(deployment_key: str) -> int:
    manager = RedisManager()
    await manager.start()
    try:
        await manager.clear_metrics_for_deployment_key(deployment_key)
    finally:
        await manager.close()

    print(f"🧹 Cleared metrics for {deployment_key}")
    return 0


async def run_invalidate_cache(deployment_key: str) -> int:
    manager = RedisManager()
    await manager.start()
    try:
        await manager.invalidate_cache(get_deployment_key_hash(deployment_key))
    finally:
        await manager.close()

    print(f"🧹 Invalidated cached responses for {deployment_key}")
    return 0


def run_api(host: str, port: int, reload: bool) -> None:
    import uvicorn

    print("🚀 Starting update-cache API Server...")
    print(f"📍 Server will run on {host}:{port}")
    print(f"🌍 Environment: {settings.environment}")
    print(f"🐛 Debug mode: {settings.debug}")
    print(f"📚 API docs: http://{host}:{port}{settings.api__docs_url}")
    print()

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload or settings.debug,
        log_level=settings.log_level,
    )


def main() -> None:
    """
    Main entry point with CLI argument parsing.
    """
    parser = argparse.ArgumentParser(
        description="update-cache - response cache and release metrics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --mode api                                  # Run the API server (default)
  python main.py --mode health                               # Exit non-zero if Redis is down
  python main.py --mode metrics --deployment-key KEY         # Print label counters
  python main.py --mode clear-metrics --deployment-key KEY   # Drop label counters
  python main.py --mode invalidate-cache --deployment-key KEY
        """,
    )

    parser.add_argument(
        "--mode",
        choices=["api", "health", "metrics", "clear-metrics", "invalidate-cache"],
        default="api",
        help="Run mode (default: api)",
    )
    parser.add_argument(
        "--deployment-key",
        help="Deployment key for the metrics and cache modes",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the API server (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port to bind the API server (default: 8080)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (API mode only)",
    )

    args = parser.parse_args()

    if args.mode == "api":
        try:
            run_api(args.host, args.port, args.reload)
        except Exception as e:
            print(f"❌ Error starting API server: {e}")
            sys.exit(1)
        return

    if args.mode == "health":
        sys.exit(asyncio.run(run_health()))

    if not args.deployment_key:
        parser.error(f"--deployment-key is required for --mode {args.mode}")

    commands = {
        "metrics": run_metrics,
        "clear-metrics": run_clear_metrics,
        "invalidate-cache": run_invalidate_cache,
    }
    sys.exit(asyncio.run(commands[args.mode](args.deployment_key)))


if __name__ == "__main__":
    main()
