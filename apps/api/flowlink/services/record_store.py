"""Record store operations consumed by sync and linking.

Thin query layer over the ORM. Unique keys are enforced by the database:
records by (organization, integration, source_id) and links by
(organization, source_record, target_record).
"""

from __future__ import annotations

from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flowlink.db.models import FieldMapping, Record, RecordLink


class LinkConflictError(Exception):
    """The store rejected a link because the pair already exists."""


# =============================================================================
# Records
# =============================================================================


def find_record_by_id(db: Session, record_id: UUID, org_id: UUID | None = None) -> Record | None:
    query = select(Record).where(Record.id == record_id)
    if org_id is not None:
        query = query.where(Record.organization_id == org_id)
    return db.scalar(query)


def find_record_by_source(db: Session, integration_id: UUID, source_id: str) -> Record | None:
    return db.scalar(
        select(Record).where(
            Record.source_integration_id == integration_id,
            Record.source_id == source_id,
        )
    )


def find_records(
    db: Session,
    org_id: UUID,
    *,
    source_system: str | None = None,
    integration_id: UUID | None = None,
    status_not_in: Iterable[str] | None = None,
) -> list[Record]:
    """
    Query records for an organization.

    status_not_in keeps records with no status at all (NULL is not terminal).
    """
    query = select(Record).where(Record.organization_id == org_id)
    if source_system is not None:
        query = query.where(Record.source_system == source_system.lower())
    if integration_id is not None:
        query = query.where(Record.source_integration_id == integration_id)
    if status_not_in:
        excluded = list(status_not_in)
        query = query.where(or_(Record.status.is_(None), Record.status.notin_(excluded)))
    return list(db.scalars(query.order_by(Record.created_at, Record.id)).all())


def upsert_record(
    db: Session,
    *,
    integration_id: UUID,
    source_id: str,
    create_data: dict[str, Any],
    update_data: dict[str, Any],
) -> tuple[Record, bool]:
    """
    Insert or update a record by (integration_id, source_id).

    On update only the keys in update_data are written; created_at and any
    other column stay untouched. Returns (record, created).
    """
    record = find_record_by_source(db, integration_id, source_id)
    if record:
        for key, value in update_data.items():
            setattr(record, key, value)
        db.flush()
        return record, False

    record = Record(source_integration_id=integration_id, source_id=source_id, **create_data)
    db.add(record)
    db.flush()
    return record, True


# =============================================================================
# Links
# =============================================================================


def find_active_link_between(
    db: Session, org_id: UUID, record_a: UUID, record_b: UUID
) -> RecordLink | None:
    """Find an active link between two records in either direction."""
    return db.scalar(
        select(RecordLink)
        .where(
            RecordLink.organization_id == org_id,
            RecordLink.is_active.is_(True),
            or_(
                and_(
                    RecordLink.source_record_id == record_a,
                    RecordLink.target_record_id == record_b,
                ),
                and_(
                    RecordLink.source_record_id == record_b,
                    RecordLink.target_record_id == record_a,
                ),
            ),
        )
        .limit(1)
    )


def create_link(
    db: Session,
    *,
    org_id: UUID,
    source_record_id: UUID,
    target_record_id: UUID,
    link_type: str,
    link_name: str | None = None,
    link_metadata: dict[str, Any] | None = None,
) -> RecordLink:
    """
    Insert a link inside a savepoint.

    Raises LinkConflictError when the unique constraint rejects the pair;
    the surrounding transaction stays usable.
    """
    link = RecordLink(
        organization_id=org_id,
        source_record_id=source_record_id,
        target_record_id=target_record_id,
        link_type=link_type,
        link_name=link_name,
        link_metadata=link_metadata,
        is_active=True,
    )
    try:
        with db.begin_nested():
            db.add(link)
            db.flush()
    except IntegrityError as exc:
        raise LinkConflictError(
            f"Link between {source_record_id} and {target_record_id} already exists"
        ) from exc
    return link


def list_active_links(db: Session, org_id: UUID) -> list[RecordLink]:
    return list(
        db.scalars(
            select(RecordLink)
            .where(RecordLink.organization_id == org_id, RecordLink.is_active.is_(True))
            .order_by(RecordLink.created_at.desc())
        ).all()
    )


def get_link(db: Session, org_id: UUID, link_id: UUID) -> RecordLink | None:
    return db.scalar(
        select(RecordLink).where(RecordLink.organization_id == org_id, RecordLink.id == link_id)
    )


def deactivate_link(db: Session, link: RecordLink) -> RecordLink:
    link.is_active = False
    db.commit()
    db.refresh(link)
    return link


# =============================================================================
# Field mappings
# =============================================================================


def find_active_field_mappings(db: Session, org_id: UUID) -> list[FieldMapping]:
    return list(
        db.scalars(
            select(FieldMapping)
            .where(FieldMapping.organization_id == org_id, FieldMapping.is_active.is_(True))
            .order_by(FieldMapping.created_at, FieldMapping.id)
        ).all()
    )
