"""
API Schemas

Pydantic models for API requests and responses.
"""

from .error import ErrorDetail, ErrorResponse

__all__ = ["ErrorResponse", "ErrorDetail"]
