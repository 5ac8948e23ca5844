"""
Fadetrack Backend: Shared Response Schemas
==========================================

Error envelope, health report and small acknowledgement bodies used by
more than one router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "validation_error",
            "message": "Missing required field: title",
            "details": {"field": "title"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """
    Returned by GET /health for load balancers and uptime monitors.

    `ai_search` reports which upstream answers AI search ("workflow",
    "gemini") or "unconfigured", and "circuit_open" while the breaker is open.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    ai_search: str = Field(description="AI upstream: workflow, gemini, unconfigured, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")


class ClientConfigResponse(BaseModel):
    """Public, non-secret values the browser needs at startup."""
    google_maps_api_key: str = Field(description="Browser key for place autocomplete")
    storage_bucket: str
    max_upload_size: int
    chatkit_daily_limit: int
    chatkit_monthly_limit: int
    ai_search_enabled: bool
