"""Record, link, field mapping and custom column ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    false,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flowlink.db.base import Base
from flowlink.db.types import JsonDocument

if TYPE_CHECKING:
    from flowlink.db.models import Integration, Organization


class Record(Base):
    """
    A ticket/issue/message pulled from an external system.

    labels and custom_fields are JSON-encoded text. custom_fields holds both
    system metadata (e.g. Zendesk via.channel) and user-entered custom-column
    values; sync merges into it and never drops user keys.
    """

    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "source_integration_id",
            "source_id",
            name="uq_records_org_integration_source",
        ),
        Index("idx_records_org_system", "organization_id", "source_system"),
        Index("idx_records_integration_status", "source_integration_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    source_integration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("integrations.id", ondelete="CASCADE"), nullable=False
    )
    source_system: Mapped[str] = mapped_column(String(50), nullable=False)
    source_id: Mapped[str] = mapped_column(String(255), nullable=False)
    record_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assignee_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assignee_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reporter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reporter_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    labels: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_fields: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_created_at: Mapped[datetime | None] = mapped_column(nullable=True)
    source_updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    organization: Mapped["Organization"] = relationship()
    integration: Mapped["Integration"] = relationship()


class RecordLink(Base):
    """
    Evidence that two records refer to the same real-world entity.

    Undirected: (A, B) and (B, A) are the same link. Deactivated, never deleted.
    """

    __tablename__ = "record_links"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "source_record_id",
            "target_record_id",
            name="uq_record_links_pair",
        ),
        Index("idx_record_links_org_active", "organization_id", "is_active"),
        Index("idx_record_links_target", "target_record_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    source_record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("records.id", ondelete="CASCADE"), nullable=False
    )
    target_record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("records.id", ondelete="CASCADE"), nullable=False
    )
    link_type: Mapped[str] = mapped_column(String(50), nullable=False)
    link_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # "metadata" is reserved on declarative classes
    link_metadata: Mapped[dict | None] = mapped_column("metadata", JsonDocument, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    source_record: Mapped["Record"] = relationship(foreign_keys=[source_record_id])
    target_record: Mapped["Record"] = relationship(foreign_keys=[target_record_id])


class FieldMapping(Base):
    """
    Declarative cross-system link rule.

    Compares source_system.source_field to target_system.target_field after
    the configured transformation. Soft-deleted via is_active.
    """

    __tablename__ = "field_mappings"
    __table_args__ = (Index("idx_field_mappings_org_active", "organization_id", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    mapping_name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_system: Mapped[str] = mapped_column(String(50), nullable=False)
    source_field: Mapped[str] = mapped_column(String(255), nullable=False)
    target_system: Mapped[str] = mapped_column(String(50), nullable=False)
    target_field: Mapped[str] = mapped_column(String(255), nullable=False)
    transformation_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_transform: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    target_transform: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CustomColumn(Base):
    """
    Org-scoped dashboard column definition.

    Values live in Record.custom_fields under the column name.
    """

    __tablename__ = "custom_columns"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_custom_columns_org_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    column_type: Mapped[str] = mapped_column("type", String(20), nullable=False)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    select_options: Mapped[list | None] = mapped_column(JsonDocument, nullable=True)
    is_required: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
