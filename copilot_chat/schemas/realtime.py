from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field


class RelayEnvelope(BaseModel):
    """Envelope for message relay WebSocket frames."""
    type: str = Field(..., description="Message type (e.g., 'ChatEdited', 'ReceiveMessage').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Message payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
