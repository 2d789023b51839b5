"""Response schemas for the snapshot store API."""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Reference to a newly stored snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(
        ...,
        description="Snapshot identifier",
        examples=["aZ3kQ9xB"]
    )

    url: str = Field(
        ...,
        description="Public URL of the snapshot"
    )

    expires_at: Optional[str] = Field(
        default=None,
        alias="expiresAt",
        description="ISO-8601 expiry time, or null if the snapshot never expires"
    )


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(
        ...,
        description="Human-readable error message"
    )

    code: Optional[str] = Field(
        default=None,
        description="Error code or type"
    )

    request_id: Optional[str] = Field(
        default=None,
        description="Unique request identifier for tracking"
    )

    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Error timestamp"
    )


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal['healthy', 'degraded', 'unhealthy'] = Field(
        ...,
        description="Overall system health status"
    )

    version: str = Field(
        ...,
        description="API version"
    )

    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Health check timestamp"
    )

    services: Dict[str, Literal['healthy', 'degraded', 'unhealthy']] = Field(
        ...,
        description="Health status of individual services"
    )

    uptime_seconds: float = Field(
        ...,
        ge=0,
        description="Application uptime in seconds"
    )
