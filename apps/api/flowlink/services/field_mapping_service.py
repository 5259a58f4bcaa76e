"""Field mapping service for org-scoped cross-system link rules."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from flowlink.db.models import FieldMapping
from flowlink.services.field_transformations import coerce_config


def list_field_mappings(db: Session, org_id: UUID, include_inactive: bool = False) -> list[FieldMapping]:
    query = db.query(FieldMapping).filter(FieldMapping.organization_id == org_id)
    if not include_inactive:
        query = query.filter(FieldMapping.is_active.is_(True))
    return query.order_by(FieldMapping.created_at.desc()).all()


def get_field_mapping(db: Session, org_id: UUID, mapping_id: UUID) -> FieldMapping | None:
    return (
        db.query(FieldMapping)
        .filter(FieldMapping.organization_id == org_id, FieldMapping.id == mapping_id)
        .first()
    )


def find_active_duplicate(
    db: Session,
    org_id: UUID,
    *,
    source_system: str,
    source_field: str,
    target_system: str,
    target_field: str,
    exclude_id: UUID | None = None,
) -> FieldMapping | None:
    query = db.query(FieldMapping).filter(
        FieldMapping.organization_id == org_id,
        FieldMapping.source_system == source_system,
        FieldMapping.source_field == source_field,
        FieldMapping.target_system == target_system,
        FieldMapping.target_field == target_field,
        FieldMapping.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(FieldMapping.id != exclude_id)
    return query.first()


def _normalize_transform(value: Any) -> dict[str, Any] | None:
    # Accepts the JSON strings older dashboards send
    if value is None:
        return None
    return coerce_config(value) or None


def create_field_mapping(
    db: Session,
    org_id: UUID,
    *,
    mapping_name: str,
    source_system: str,
    source_field: str,
    target_system: str,
    target_field: str,
    transformation_type: str | None = None,
    source_transform: dict[str, Any] | str | None = None,
    target_transform: dict[str, Any] | str | None = None,
) -> FieldMapping:
    source_system = source_system.lower()
    target_system = target_system.lower()
    existing = find_active_duplicate(
        db,
        org_id,
        source_system=source_system,
        source_field=source_field,
        target_system=target_system,
        target_field=target_field,
    )
    if existing:
        raise ValueError("Field mapping already exists")

    mapping = FieldMapping(
        organization_id=org_id,
        mapping_name=mapping_name,
        source_system=source_system,
        source_field=source_field,
        target_system=target_system,
        target_field=target_field,
        transformation_type=transformation_type,
        source_transform=_normalize_transform(source_transform),
        target_transform=_normalize_transform(target_transform),
        is_active=True,
    )
    db.add(mapping)
    db.commit()
    db.refresh(mapping)
    return mapping


def update_field_mapping(db: Session, mapping: FieldMapping, updates: dict[str, Any]) -> FieldMapping:
    """
    Apply a partial update.

    Re-activating, or changing the field pair of, a mapping must not collide
    with another active mapping.
    """
    for key in ("source_system", "target_system"):
        if updates.get(key):
            updates[key] = updates[key].lower()
    for key in ("source_transform", "target_transform"):
        if key in updates:
            updates[key] = _normalize_transform(updates[key])

    candidate = {
        "source_system": updates.get("source_system", mapping.source_system),
        "source_field": updates.get("source_field", mapping.source_field),
        "target_system": updates.get("target_system", mapping.target_system),
        "target_field": updates.get("target_field", mapping.target_field),
    }
    will_be_active = updates.get("is_active", mapping.is_active)
    if will_be_active and find_active_duplicate(
        db, mapping.organization_id, exclude_id=mapping.id, **candidate
    ):
        raise ValueError("Field mapping already exists")

    for key, value in updates.items():
        setattr(mapping, key, value)
    db.commit()
    db.refresh(mapping)
    return mapping


def deactivate_field_mapping(db: Session, mapping: FieldMapping) -> None:
    mapping.is_active = False
    db.commit()
