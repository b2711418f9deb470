"""Pydantic schemas for API request/response validation."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# Request Schemas (what clients send to us)
# =============================================================================


class ScanCreateRequest(BaseModel):
    """Request body for creating a new scan."""

    # Checked by validate_url so a missing URL gets the same 400 as a bad one
    url: str | None = Field(
        default=None,
        description="The URL of the website to scan",
        examples=["https://example.com"],
    )


# =============================================================================
# Response Schemas (what we send back to clients)
# =============================================================================


class ScanCreatedData(BaseModel):
    scan_id: uuid.UUID


class ScanCreatedResponse(BaseModel):
    """Response when a scan is successfully queued."""

    success: bool = True
    message: str = "Scan initiated"
    data: ScanCreatedData


class ScanStatusData(BaseModel):
    id: uuid.UUID
    website_id: uuid.UUID
    status: str
    progress: int = Field(ge=0, le=100)
    error: str | None = None
    completed_at: datetime | None = None


class ScanStatusResponse(BaseModel):
    success: bool = True
    data: ScanStatusData


class ScanResultsResponse(BaseModel):
    """
    Scan results, already redacted for the caller's tier.

    ``data`` keeps the shape produced by the results service; free callers
    only see category scores.
    """

    success: bool = True
    data: dict[str, Any]
    is_premium: bool


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


# =============================================================================
# Health Check
# =============================================================================


class ServiceHealth(BaseModel):
    status: str
    message: str | None = None


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = "ok"
    timestamp: datetime
    version: str
    environment: str
    services: dict[str, ServiceHealth]
