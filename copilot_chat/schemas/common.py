from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement, used by the health probe."""
    message: str = Field(..., description="Human readable message")


class ErrorInfo(BaseModel):
    type: str = Field(..., description="Error kind: http_error, validation_error, conflict or internal_error")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Validation issues or other structured detail")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Body of every error answered by the API's exception handlers."""
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo
    correlation_id: Optional[str] = Field(default=None, description="Value echoed in X-Correlation-ID")
    user_id: Optional[str] = Field(default=None, description="Authenticated caller, when known")
    path: Optional[str] = Field(default=None)
    method: Optional[str] = Field(default=None)
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
