"""API response schemas."""
from datetime import datetime, timezone
from typing import Optional, Union
from pydantic import BaseModel, Field

from ..services.refresh_session import RefreshPhase


class RefreshBarResponse(BaseModel):
    """Response schema for the refresh bar."""
    is_loading: bool
    last_refresh_time: Optional[Union[datetime, int, float, str]] = None
    text: str
    fetch_count: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RefreshTriggerResponse(BaseModel):
    """Response schema for refresh trigger requests."""
    accepted: bool
    phase: RefreshPhase
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
