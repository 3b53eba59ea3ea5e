"""
Redis key and hash-field naming.

These names are shared with state already deployed in the store and must
not change.
"""

from typing import Optional

from update_cache.models.deployment import ACTIVE, DeploymentStatus

_VALID_STATUSES = frozenset(status.value for status in DeploymentStatus)


def is_valid_deployment_status(status: Optional[str]) -> bool:
    """True for Downloaded, DeploymentSucceeded and DeploymentFailed."""
    return status in _VALID_STATUSES


def get_label_status_field(label: str, status: Optional[str]) -> Optional[str]:
    """``"<label>:<status>"``, or None when the status is not recognised."""
    if is_valid_deployment_status(status):
        return f"{label}:{status}"
    return None


def get_label_active_count_field(label: Optional[str]) -> Optional[str]:
    """``"<label>:Active"``, or None for an empty label."""
    if label:
        return f"{label}:{ACTIVE}"
    return None


def get_deployment_key_hash(deployment_key: str) -> str:
    """Response cache expiry key for everything served under a deployment key."""
    return f"deploymentKey:{deployment_key}"


def get_deployment_key_labels_hash(deployment_key: str) -> str:
    """Hash holding the per-label counters of a deployment key."""
    return f"deploymentKeyLabels:{deployment_key}"


def get_deployment_key_clients_hash(deployment_key: str) -> str:
    """Hash mapping client id to current label (legacy)."""
    return f"deploymentKeyClients:{deployment_key}"
