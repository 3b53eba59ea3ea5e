"""
Stores Package

Connection management and guarded command execution for the Redis store.
"""

from .redis_client import (
    ConnectionState,
    Disabled,
    Enabled,
    HandleRole,
    StoreConnection,
    StoreHandle,
    create_redis_client,
)
from .redis_commands import BatchCommands, RedisCommands
from .safe_invoke import StoreBatch, StoreCommand, StoreResult, safe_invoke

__all__ = [
    # Connection
    "ConnectionState",
    "Disabled",
    "Enabled",
    "HandleRole",
    "StoreConnection",
    "StoreHandle",
    "create_redis_client",
    # Command interface
    "BatchCommands",
    "RedisCommands",
    # Safe invocation
    "StoreBatch",
    "StoreCommand",
    "StoreResult",
    "safe_invoke",
]
