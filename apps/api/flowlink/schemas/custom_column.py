"""Pydantic schemas for dashboard custom columns."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CustomColumnCreate(BaseModel):
    """Schema for creating a custom column."""

    name: str = Field(min_length=1, max_length=100, description="Key in record custom_fields")
    label: str = Field(min_length=1, max_length=255, description="Display label")
    type: Literal["text", "number", "date", "boolean", "select"] = "text"
    default_value: str | None = None
    select_options: list[str] | None = Field(
        default=None, description="Options for select type (at least 2)"
    )
    is_required: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Normalize name to lowercase with underscores."""
        normalized = v.lower().strip().replace(" ", "_").replace("-", "_")
        if not normalized.replace("_", "").isalnum():
            raise ValueError("Name must contain only letters, numbers, and underscores")
        return normalized


class CustomColumnRead(BaseModel):
    id: UUID
    organization_id: UUID
    name: str
    label: str
    type: str = Field(validation_alias="column_type")
    default_value: str | None
    select_options: list[str] | None
    is_required: bool
    sort_order: int
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}
