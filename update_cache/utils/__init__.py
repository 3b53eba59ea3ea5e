"""
Utilities Package

Helper utilities for update-cache.
"""

from .redis_keys import (
    get_deployment_key_clients_hash,
    get_deployment_key_hash,
    get_deployment_key_labels_hash,
    get_label_active_count_field,
    get_label_status_field,
    is_valid_deployment_status,
)

__all__ = [
    "get_deployment_key_clients_hash",
    "get_deployment_key_hash",
    "get_deployment_key_labels_hash",
    "get_label_active_count_field",
    "get_label_status_field",
    "is_valid_deployment_status",
]
