"""Pydantic schemas for record links and linking runs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class MappingLinkResultRead(BaseModel):
    mapping_id: UUID
    mapping_name: str
    links_created: int
    error: str | None = None

    model_config = {"from_attributes": True}


class LinkingResultRead(BaseModel):
    """Totals for a linking pass plus one entry per mapping."""

    links_created: int
    mappings_processed: int
    failed_mappings: int = 0
    mappings: list[MappingLinkResultRead] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RecordLinkRead(BaseModel):
    id: UUID
    source_record_id: UUID
    target_record_id: UUID
    link_type: str
    link_name: str | None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="link_metadata")
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
