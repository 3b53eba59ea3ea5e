"""
Error Codes

Standardized error codes for update-cache.
"""

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping


class ErrorCode(StrEnum):
    """Base error code enum (string-based)."""


class ConfigurationErrorCode(ErrorCode):
    """Configuration-related error codes."""

    CONFIG_LOAD_FAILED = "CONFIGURATION_LOAD_FAILED"


class RedisErrorCode(ErrorCode):
    """Redis-related error codes."""

    NOT_CONFIGURED = "REDIS_NOT_CONFIGURED"
    NOT_READY = "REDIS_NOT_READY"
    CONNECTION_FAILED = "REDIS_CONNECTION_FAILED"
    OPERATION_FAILED = "REDIS_OPERATION_FAILED"
    SETUP_FAILED = "REDIS_SETUP_FAILED"


class APIErrorCode(ErrorCode):
    """API-related error codes."""

    INTERNAL_ERROR = "API_INTERNAL_ERROR"


class ValidationErrorCode(ErrorCode):
    """Validation-related error codes."""

    INVALID_INPUT = "VALIDATION_INVALID_INPUT"


class DataProcessErrorCode(ErrorCode):
    """Data processing error codes."""

    PARSING_FAILED = "DATA_PROCESS_PARSING_FAILED"


# Error code to HTTP status mapping
#
# Error code values include a domain prefix (REDIS_*, API_*, ...) so they stay
# unique across logs and API responses. Every code needs an entry here.
#
ERROR_CODE_MAP: Mapping[ErrorCode, int] = MappingProxyType(
    {
        # Configuration errors
        ConfigurationErrorCode.CONFIG_LOAD_FAILED: 500,
        # Redis errors
        RedisErrorCode.NOT_CONFIGURED: 503,
        RedisErrorCode.NOT_READY: 503,
        RedisErrorCode.CONNECTION_FAILED: 503,
        RedisErrorCode.OPERATION_FAILED: 500,
        RedisErrorCode.SETUP_FAILED: 503,
        # API errors
        APIErrorCode.INTERNAL_ERROR: 500,
        # Validation errors
        ValidationErrorCode.INVALID_INPUT: 400,
        # Data processing errors
        DataProcessErrorCode.PARSING_FAILED: 500,
    }
)


def _get_status_for_string(error_code_str: str) -> int:
    """Helper function to get status code for string error code."""
    for code in ERROR_CODE_MAP:
        if code.value == error_code_str:
            return ERROR_CODE_MAP[code]
    return 500


def get_http_status_code(error_code: ErrorCode | str) -> int:
    """
    Get HTTP status code for an error code.

    Args:
        error_code: Error code enum or string

    Returns:
        HTTP status code (defaults to 500 if not found)
    """
    if isinstance(error_code, ErrorCode):
        return ERROR_CODE_MAP.get(error_code, 500)
    return _get_status_for_string(error_code)

