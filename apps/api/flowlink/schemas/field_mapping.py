"""Pydantic schemas for field mappings."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from flowlink.db.enums import SourceSystem, TransformationType
from flowlink.services.field_transformations import coerce_config


def _validate_system(value: str) -> str:
    normalized = value.strip().lower()
    SourceSystem(normalized)
    return normalized


def _validate_transform(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        return coerce_config(value) or None
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid transformation config: {exc}") from exc


class FieldMappingBase(BaseModel):
    """Base field mapping fields."""

    model_config = {"use_enum_values": True}

    mapping_name: str = Field(min_length=1, max_length=255)
    source_system: str = Field(description="System whose records are probed")
    source_field: str = Field(min_length=1, max_length=255, examples=["zendesk.custom_123"])
    target_system: str = Field(description="System whose records are indexed")
    target_field: str = Field(min_length=1, max_length=255, examples=["jira.key"])
    transformation_type: TransformationType | None = None
    source_transform: dict[str, Any] | None = Field(
        default=None, description="Config for the source side (object or JSON string)"
    )
    target_transform: dict[str, Any] | None = None

    @field_validator("source_system", "target_system")
    @classmethod
    def validate_system(cls, v: str) -> str:
        return _validate_system(v)

    @field_validator("source_transform", "target_transform", mode="before")
    @classmethod
    def validate_transform(cls, v: Any) -> dict[str, Any] | None:
        return _validate_transform(v)


class FieldMappingCreate(FieldMappingBase):
    """Schema for creating a field mapping."""

    pass


class FieldMappingUpdate(BaseModel):
    """Partial update; omitted fields are left as they are."""

    model_config = {"use_enum_values": True}

    mapping_name: str | None = Field(default=None, min_length=1, max_length=255)
    source_system: str | None = None
    source_field: str | None = Field(default=None, min_length=1, max_length=255)
    target_system: str | None = None
    target_field: str | None = Field(default=None, min_length=1, max_length=255)
    transformation_type: TransformationType | None = None
    source_transform: dict[str, Any] | None = None
    target_transform: dict[str, Any] | None = None
    is_active: bool | None = None

    @field_validator("source_system", "target_system")
    @classmethod
    def validate_system(cls, v: str | None) -> str | None:
        return _validate_system(v) if v is not None else v

    @field_validator("source_transform", "target_transform", mode="before")
    @classmethod
    def validate_transform(cls, v: Any) -> dict[str, Any] | None:
        return _validate_transform(v)


class FieldMappingRead(BaseModel):
    id: UUID
    organization_id: UUID
    mapping_name: str
    source_system: str
    source_field: str
    target_system: str
    target_field: str
    transformation_type: str | None
    source_transform: dict[str, Any] | None
    target_transform: dict[str, Any] | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
