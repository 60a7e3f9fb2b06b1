"""Payloads exchanged with the bank backend."""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class BackendModel(BaseModel):
    """Base for camelCase backend payloads."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProgressHistoryEntry(BackendModel):
    """One history entry of an operation as reported by the backend."""
    status: str
    timestamp: datetime
    message: Optional[str] = None


class OperationStatusDetail(BackendModel):
    """Progress of one account in the aggregated refresh status."""
    account_number: str
    account_name: str = ""
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    last_update_time: Optional[datetime] = None
    error_message: Optional[str] = None
    history: List[ProgressHistoryEntry] = Field(default_factory=list)
    items_processed: Optional[int] = None
    items_total: Optional[int] = None

    @field_validator("history", mode="before")
    @classmethod
    def _null_history(cls, value):
        return [] if value is None else value


class AggregatedRefreshStatus(BackendModel):
    """Response of GET /api/v1/refresh/status."""
    progress_map: Dict[str, OperationStatusDetail] = Field(default_factory=dict)
    refresh_in_progress: bool = False

    @field_validator("progress_map", mode="before")
    @classmethod
    def _null_map(cls, value):
        return {} if value is None else value


class ProgressUpdate(BackendModel):
    """A single progress event pushed for one account."""
    account_number: str = Field(..., min_length=1)
    account_name: str = ""
    status: str
    message: Optional[str] = None
    timestamp: Optional[datetime] = None
