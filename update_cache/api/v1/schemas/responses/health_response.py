"""
Health Check Response Schemas

Response models for API health check endpoints.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class StoreHealth(BaseModel):
    """Health of the Redis store behind the cache and metrics."""

    status: Literal["disabled", "healthy", "unhealthy"] = Field(
        ..., description="Store status"
    )
    connections: Dict[str, str] = Field(
        default_factory=dict, description="State of each logical connection"
    )
    error: Optional[str] = Field(None, description="Why the store is unhealthy")


class HealthResponse(BaseModel):
    """Response model for API health check endpoint."""

    status: str = Field(
        ..., description="Overall health status", examples=["healthy", "unhealthy"]
    )
    timestamp: str = Field(..., description="Health check timestamp (ISO format)")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Environment name")
    components: Dict[str, Any] = Field(
        ..., description="Health status of individual components"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00.000Z",
                "version": "1.0.0",
                "environment": "development",
                "components": {
                    "api": {"status": "healthy", "version": "1.0.0"},
                    "redis": {
                        "status": "healthy",
                        "connections": {"ops": "ready", "metrics": "ready"},
                        "error": None,
                    },
                },
            }
        }
    )
