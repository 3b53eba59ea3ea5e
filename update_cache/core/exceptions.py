"""
Custom Exceptions

Application-specific exception classes.

USAGE GUIDELINES:
- Always use ErrorCode enum members, not string literals
- Each exception subclass defaults to its corresponding domain error code
- Use the wrap() class method to preserve exception chains when wrapping lower-level exceptions
- Store failures are carried as values (see stores.safe_invoke.StoreResult) and
  only surface as raised exceptions from health checks
"""

import json
from typing import TYPE_CHECKING, Any, Dict, Optional

from update_cache.core.error_codes import (
    ConfigurationErrorCode,
    DataProcessErrorCode,
    RedisErrorCode,
)

if TYPE_CHECKING:
    from update_cache.core.error_codes import ErrorCode


def _safe_serialize(obj: Any) -> Any:
    """Safely serialize an object for JSON, using repr() for non-serializable objects."""
    try:
        json.dumps(obj)
        return obj
    except (TypeError, ValueError):
        return repr(obj)


class ApplicationException(Exception):
    """Base exception for application-specific errors."""

    default_error_code: Optional["ErrorCode"] = None

    def __init__(
        self,
        message: str,
        error_code: Optional["ErrorCode | str"] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization with safe handling."""
        safe_details = {k: _safe_serialize(v) for k, v in self.details.items()}

        result = {
            "message": self.message,
            "code": (
                self.error_code.value
                if self.error_code is not None and hasattr(self.error_code, "value")
                else self.error_code
            ),
            "details": safe_details,
        }

        # Priority: custom cause > __cause__ > __context__
        cause = (
            self.cause
            or getattr(self, "__cause__", None)
            or getattr(self, "__context__", None)
        )
        if cause:
            result["cause"] = {"type": cause.__class__.__name__, "message": str(cause)}

        return result

    @classmethod
    def wrap(
        cls,
        exc: Exception,
        message: str,
        error_code: Optional["ErrorCode"] = None,
        **context: Any,
    ) -> "ApplicationException":
        """
        Wrap a lower-level exception into a business exception while preserving the exception chain.

        Args:
            exc: The original exception to wrap
            message: Business-level error message
            error_code: ErrorCode enum member (defaults to the class default)
            **context: Additional context to include in details

        Returns:
            New exception instance with preserved exception chain

        Example:
            try:
                await client.hget(key, field)
            except RedisError as e:
                failure = StoreOperationException.wrap(
                    e, "HGET failed", command="hget", key=key
                )
        """
        return cls(message=message, error_code=error_code, details=context, cause=exc)

    def __str__(self) -> str:
        """String representation with error code and details."""
        parts = [self.message]
        if self.error_code:
            code_str = (
                self.error_code.value
                if hasattr(self.error_code, "value")
                else self.error_code
            )
            parts.append(f"[{code_str}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )

    @property
    def http_status(self) -> int:
        """Get HTTP status code for this exception (lazy-loaded)."""
        if self.error_code:
            from update_cache.core.error_codes import get_http_status_code

            return get_http_status_code(self.error_code)
        return 500


class ConfigurationException(ApplicationException):
    """Exception raised for configuration-related errors."""

    default_error_code = ConfigurationErrorCode.CONFIG_LOAD_FAILED


class RedisException(ApplicationException):
    """Exception raised for Redis-related errors."""

    default_error_code = RedisErrorCode.OPERATION_FAILED


class StoreNotConfiguredException(RedisException):
    """No host or port was configured; the store is permanently disabled."""

    default_error_code = RedisErrorCode.NOT_CONFIGURED


class StoreNotReadyException(RedisException):
    """The handle exists but is not currently connected."""

    default_error_code = RedisErrorCode.NOT_READY


class StoreOperationException(RedisException):
    """A transport or protocol failure on a specific command."""

    default_error_code = RedisErrorCode.OPERATION_FAILED


class MetricsSetupException(RedisException):
    """Selecting the metrics database or verifying writes failed. Retried on next use."""

    default_error_code = RedisErrorCode.SETUP_FAILED


class DataProcessException(ApplicationException):
    """Exception raised for data processing errors."""

    default_error_code = DataProcessErrorCode.PARSING_FAILED


class CacheDecodeException(DataProcessException):
    """A stored cache payload could not be parsed."""

    default_error_code = DataProcessErrorCode.PARSING_FAILED
