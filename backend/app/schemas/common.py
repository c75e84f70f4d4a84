"""
DevDoc Backend — Shared Schemas
=================================

What:  Error and health response formats shared by every router.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "Project not found",
            "code": "not_found",
            "request_id": "550e8400"
        }
    """
    error: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /api/health."""

    status: str = Field(description="OK when the database answers, DEGRADED otherwise")
    timestamp: datetime = Field(description="Server time (UTC)")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
