"""
Metrics Aggregator Service

Per-deployment release adoption counters kept in the metrics database.

Each deployment key owns a labels hash (``deploymentKeyLabels:<key>``) whose
fields are ``<label>:<status>`` and ``<label>:Active`` counters. The legacy
per-client tracking keeps ``client id -> label`` in ``deploymentKeyClients:<key>``.

Counters are not clamped: out-of-order transitions can drive an Active count
below zero.
"""

import math
from typing import Any, Optional

from update_cache.core.logger import get_logger
from update_cache.models.deployment import DeploymentMetrics, DeploymentStatus
from update_cache.services.metrics_setup import MetricsSetup
from update_cache.stores.redis_client import HandleRole, StoreConnection
from update_cache.stores.safe_invoke import StoreBatch, StoreCommand, StoreResult, safe_invoke
from update_cache.utils.redis_keys import (
    get_deployment_key_clients_hash,
    get_deployment_key_labels_hash,
    get_label_active_count_field,
    get_label_status_field,
)

logger = get_logger(__name__)


def parse_metric_value(value: Any) -> Any:
    """
    Redis returns counters as strings; turn numeric ones back into numbers.

    Integers parse to int, other finite numbers to float, anything else is
    returned unchanged.
    """
    if not isinstance(value, str):
        return value
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        return value
    return number if math.isfinite(number) else value


class MetricsAggregator:
    """Counter updates and reads on the metrics handle."""

    def __init__(self, connection: StoreConnection, setup: MetricsSetup) -> None:
        self.connection = connection
        self.setup = setup

    async def _call(self, command: StoreCommand, *args: Any) -> StoreResult[Any]:
        """Run a command once the metrics database is set up."""
        ready = await self.setup.ensure()
        if not ready.ok:
            return ready
        return await safe_invoke(self.connection, HandleRole.METRICS, command, *args)

    async def increment_label_status_count(
        self, deployment_key: str, label: str, status: str
    ) -> None:
        """
        Atomically add 1 to ``<label>:<status>``, creating the field at 1.

        Unrecognised statuses are ignored.
        """
        field = get_label_status_field(label, status)
        if field is None:
            logger.debug("Ignoring unknown deployment status %r for %s", status, label)
            return

        result = await self._call(
            StoreCommand.HINCRBY, get_deployment_key_labels_hash(deployment_key), field, 1
        )
        if not result.ok:
            logger.debug("Status count not recorded for %s: %s", deployment_key, result.error)

    async def record_update(
        self,
        current_deployment_key: str,
        current_label: str,
        previous_deployment_key: Optional[str] = None,
        previous_label: Optional[str] = None,
    ) -> None:
        """
        Record a client moving to a new release in one transaction.

        Increments Active and DeploymentSucceeded for the current label and,
        when both previous values are given, decrements Active for the
        previous label. All counters change together or not at all.
        """
        active_field = get_label_active_count_field(current_label)
        if active_field is None:
            logger.debug("Ignoring update report without a label for %s", current_deployment_key)
            return

        current_hash = get_deployment_key_labels_hash(current_deployment_key)
        batch = (
            StoreBatch()
            .hincrby(current_hash, active_field, 1)
            .hincrby(
                current_hash,
                get_label_status_field(
                    current_label, DeploymentStatus.DEPLOYMENT_SUCCEEDED
                ),
                1,
            )
        )

        if previous_deployment_key and previous_label:
            batch.hincrby(
                get_deployment_key_labels_hash(previous_deployment_key),
                get_label_active_count_field(previous_label),
                -1,
            )

        result = await self._call(StoreCommand.EXEC_BATCH, batch)
        if not result.ok:
            logger.debug("Update not recorded for %s: %s", current_deployment_key, result.error)

    async def get_metrics_with_deployment_key(
        self, deployment_key: str
    ) -> Optional[DeploymentMetrics]:
        """
        All label counters of a deployment key.

        Returns:
            e.g. ``{"v1:DeploymentSucceeded": 123, "v1:Active": 119}``, or None
            when nothing is recorded or the store is unavailable
        """
        result = await self._call(
            StoreCommand.HGETALL, get_deployment_key_labels_hash(deployment_key)
        )
        if not result.ok:
            logger.debug("Metrics unavailable for %s: %s", deployment_key, result.error)
            return None

        if not result.value:
            return None

        return {
            field: parse_metric_value(value) for field, value in result.value.items()
        }

    async def clear_metrics_for_deployment_key(self, deployment_key: str) -> None:
        """Delete both the labels hash and the clients hash of a deployment key."""
        result = await self._call(
            StoreCommand.DEL,
            get_deployment_key_labels_hash(deployment_key),
            get_deployment_key_clients_hash(deployment_key),
        )
        if not result.ok:
            logger.debug("Metrics not cleared for %s: %s", deployment_key, result.error)

    # Legacy per-client tracking, kept for older callers.

    async def get_current_active_label(
        self, deployment_key: str, client_unique_id: str
    ) -> Optional[str]:
        """Label a client last reported as active, if known."""
        result = await self._call(
            StoreCommand.HGET,
            get_deployment_key_clients_hash(deployment_key),
            client_unique_id,
        )
        return result.value_or(None)

    async def update_active_app_for_client(
        self,
        deployment_key: str,
        client_unique_id: str,
        to_label: str,
        from_label: Optional[str] = None,
    ) -> None:
        """Point a client at ``to_label`` and move one Active count from ``from_label``."""
        to_field = get_label_active_count_field(to_label)
        if to_field is None:
            logger.debug("Ignoring client update without a label for %s", deployment_key)
            return

        labels_hash = get_deployment_key_labels_hash(deployment_key)
        batch = (
            StoreBatch()
            .hset(get_deployment_key_clients_hash(deployment_key), client_unique_id, to_label)
            .hincrby(labels_hash, to_field, 1)
        )
        if from_label:
            batch.hincrby(labels_hash, get_label_active_count_field(from_label), -1)

        result = await self._call(StoreCommand.EXEC_BATCH, batch)
        if not result.ok:
            logger.debug("Client label not updated for %s: %s", deployment_key, result.error)

    async def remove_deployment_key_client_active_label(
        self, deployment_key: str, client_unique_id: str
    ) -> None:
        """Forget which label a client was running."""
        result = await self._call(
            StoreCommand.HDEL,
            get_deployment_key_clients_hash(deployment_key),
            client_unique_id,
        )
        if not result.ok:
            logger.debug("Client label not removed for %s: %s", deployment_key, result.error)
