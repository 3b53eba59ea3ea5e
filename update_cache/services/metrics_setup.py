"""
Metrics Database Setup

Lazily selects the metrics logical database and verifies that it accepts
writes, once per process. Concurrent callers share one in-flight attempt; a
failed attempt is forgotten so the next caller starts over.
"""

import asyncio
from typing import Optional

from update_cache.core.exceptions import MetricsSetupException, StoreNotConfiguredException
from update_cache.core.logger import get_logger
from update_cache.stores.redis_client import HandleRole, StoreConnection
from update_cache.stores.safe_invoke import StoreCommand, StoreResult, safe_invoke

logger = get_logger(__name__)

HEALTH_KEY = "health"


class MetricsSetup:
    """Memoized one-time setup of the metrics handle."""

    def __init__(self, connection: StoreConnection, metrics_db: int) -> None:
        self.connection = connection
        self.metrics_db = metrics_db
        self._attempt: Optional[asyncio.Future[None]] = None

    @property
    def is_complete(self) -> bool:
        attempt = self._attempt
        return (
            attempt is not None
            and attempt.done()
            and not attempt.cancelled()
            and attempt.exception() is None
        )

    async def ensure(self) -> StoreResult[None]:
        """
        Wait for setup, starting it if no attempt is in flight.

        Returns:
            StoreResult: Success, or the reason metrics are unavailable
        """
        if not self.connection.is_enabled:
            return StoreResult.failure(
                StoreNotConfiguredException("Redis manager is not enabled")
            )

        attempt = self._attempt
        if attempt is None:
            # No await between the check and the assignment, so concurrent
            # callers on this loop cannot both start an attempt.
            attempt = asyncio.ensure_future(self._run())
            self._attempt = attempt

        try:
            await asyncio.shield(attempt)
        except MetricsSetupException as e:
            return StoreResult.failure(e)

        return StoreResult.success()

    async def _run(self) -> None:
        try:
            selected = await safe_invoke(
                self.connection, HandleRole.METRICS, StoreCommand.SELECT, self.metrics_db
            )
            if not selected.ok:
                raise MetricsSetupException(
                    f"Could not select metrics database {self.metrics_db}",
                    details={"db": self.metrics_db},
                    cause=selected.error,
                )

            written = await safe_invoke(
                self.connection, HandleRole.METRICS, StoreCommand.SET, HEALTH_KEY, HEALTH_KEY
            )
            if not written.ok:
                raise MetricsSetupException(
                    "Metrics database rejected the write check",
                    details={"db": self.metrics_db},
                    cause=written.error,
                )
        except BaseException:
            # Forget the failed attempt so the next caller retries
            self._attempt = None
            raise

        logger.info("Metrics database %d selected", self.metrics_db)
