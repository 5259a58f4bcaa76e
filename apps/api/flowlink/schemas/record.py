"""Pydantic schemas for records."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class RecordRead(BaseModel):
    id: UUID
    source_system: str
    source_id: str
    record_type: str | None = None
    title: str | None = None
    status: str | None = None
    priority: str | None = None
    assignee_name: str | None = None
    assignee_email: str | None = None
    reporter_name: str | None = None
    reporter_email: str | None = None
    labels: list[str] = Field(default_factory=list)
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    source_url: str | None = None
    source_created_at: datetime | None = None
    source_updated_at: datetime | None = None


class CustomFieldsUpdate(BaseModel):
    """Custom-column values keyed by column name."""

    custom_fields: dict[str, Any] = Field(description="Dict of column name -> value")


class CustomFieldsResponse(BaseModel):
    record_id: UUID
    custom_fields: dict[str, Any]
