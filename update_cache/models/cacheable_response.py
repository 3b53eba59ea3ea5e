"""
Cacheable Response Model

The serialized form of an API response stored in the response cache.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheableResponse(BaseModel):
    """
    A response that can be replayed from the cache.

    Stored as JSON ``{"statusCode": <int>, "body": <any>}`` so entries written
    by other services sharing the store stay readable.
    """

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(..., alias="statusCode", description="HTTP status code")
    body: Any = Field(default=None, description="Response body, any JSON value")

    def to_json(self) -> str:
        """Serialize using the wire field names."""
        return self.model_dump_json(by_alias=True)
