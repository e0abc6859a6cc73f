"""Pydantic schemas for sync runs and webhooks."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class SyncRunResponse(BaseModel):
    """Response schema for a single sync run."""

    id: str
    connection_id: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    accounts_imported: int = 0
    transactions_imported: int = 0

    model_config = {"from_attributes": True}


class WebhookAcceptedResponse(BaseModel):
    """Response schema for an accepted aggregator webhook."""

    scheduled_connection_ids: list[str]
