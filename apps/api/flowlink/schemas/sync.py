"""Pydantic schemas for integration sync and sync settings."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SyncResultRead(BaseModel):
    """Counts from one sync pass; error is set when the pass failed."""

    status: str
    system: str
    processed: int = 0
    created: int = 0
    updated: int = 0
    auto_solved: int = 0
    failed: int = 0
    error: str | None = None
    duration_ms: int | None = None

    model_config = {"from_attributes": True}


class SyncConfigRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auto_solve_missing_tickets: bool = Field(alias="autoSolveMissingTickets")
    search_query: str | None = Field(default=None, alias="searchQuery")


class SyncConfigUpdate(BaseModel):
    """Only the provided keys are merged into the integration config."""

    model_config = ConfigDict(populate_by_name=True)

    auto_solve_missing_tickets: bool | None = Field(default=None, alias="autoSolveMissingTickets")
    search_query: str | None = Field(default=None, alias="searchQuery")


class SyncLogRead(BaseModel):
    id: UUID
    sync_type: str
    status: str
    message: str | None
    records_processed: int
    records_created: int
    records_updated: int
    records_auto_solved: int
    records_failed: int
    duration_ms: int | None
    started_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}
