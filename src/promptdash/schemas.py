"""
PromptDash - Common Schemas.

Shared Pydantic models used across all modules.
"""

from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# Error Responses
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Short, human-readable error")
    details: str | dict[str, Any] | None = Field(default=None, description="User-facing sentence or context")
    code: str = Field(..., description="Machine-readable error code")
    request_id: str | None = Field(default=None, description="Request ID for tracing")


# =============================================================================
# Health Check
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., pattern="^(healthy|degraded)$")
    version: str
    features: dict[str, bool]
    app_env: str | None = None
    is_production: bool | None = None
    gemini_configured: bool | None = None
