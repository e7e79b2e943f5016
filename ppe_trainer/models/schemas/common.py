"""
Common schemas used across the API.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class ResponseStatus(BaseModel):
    """Base schema for API response status."""
    success: bool
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    version: str
    database: str
    timestamp: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "ok",
                "version": "1.0.0",
                "database": "ok",
                "timestamp": "2025-05-06T01:08:25.123Z"
            }
        }
    )
