"""
Deployment Metric Types

Status values reported by clients and the shape of aggregated label counters.
"""

from enum import StrEnum
from typing import Dict, Union


class DeploymentStatus(StrEnum):
    """Status a client reports after attempting an update."""

    DEPLOYMENT_SUCCEEDED = "DeploymentSucceeded"
    DEPLOYMENT_FAILED = "DeploymentFailed"
    DOWNLOADED = "Downloaded"


# Field suffix for the number of clients currently running a label
ACTIVE = "Active"

# e.g. {"v1:DeploymentSucceeded": 123, "v1:DeploymentFailed": 4, "v1:Active": 119}
DeploymentMetrics = Dict[str, Union[int, float, str]]
