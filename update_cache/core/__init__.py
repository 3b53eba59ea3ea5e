"""
Core Package

Configuration, logging, and error handling shared by every update-cache component.
"""

# ruff: noqa: F401  # All imports are re-exported via __all__

from .config import Settings, settings  # noqa: F401
from .error_codes import (  # noqa: F401
    ERROR_CODE_MAP,
    APIErrorCode,
    ConfigurationErrorCode,
    DataProcessErrorCode,
    RedisErrorCode,
    ValidationErrorCode,
    get_http_status_code,
)
from .exceptions import (  # noqa: F401
    ApplicationException,
    CacheDecodeException,
    ConfigurationException,
    DataProcessException,
    MetricsSetupException,
    RedisException,
    StoreNotConfiguredException,
    StoreNotReadyException,
    StoreOperationException,
)
from .logger import get_logger  # noqa: F401

__all__ = [
    # Configuration
    "Settings",
    "settings",
    # Error handling
    "ERROR_CODE_MAP",
    "APIErrorCode",
    "ConfigurationErrorCode",
    "DataProcessErrorCode",
    "RedisErrorCode",
    "ValidationErrorCode",
    "get_http_status_code",
    # Exceptions
    "ApplicationException",
    "ConfigurationException",
    "RedisException",
    "StoreNotConfiguredException",
    "StoreNotReadyException",
    "StoreOperationException",
    "MetricsSetupException",
    "DataProcessException",
    "CacheDecodeException",
    # Logger
    "get_logger",
]
