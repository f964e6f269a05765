"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Human-readable description of a failed request."""

    message: str = Field(..., description="Error message safe to show to clients.")


class ErrorResponse(BaseModel):
    """Envelope used for every non-2xx response."""

    error: ErrorDetail
