"""
Record linking service.

Links records across systems using the organization's active field mappings:
the target side is indexed once per mapping, then every source record is
probed against it. Re-running over unchanged data creates nothing new.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from flowlink.core.structured_logging import build_log_context
from flowlink.db.enums import LinkType
from flowlink.db.models import FieldMapping, Record
from flowlink.services import record_store
from flowlink.services.field_transformations import resolve_transform
from flowlink.services.matching_index import build_index, derive_match_value, match_key
from flowlink.services.record_fields import strip_system_prefix

logger = logging.getLogger(__name__)

LINK_CREATED_BY = "auto_linking_service"


@dataclass
class MappingLinkResult:
    mapping_id: UUID
    mapping_name: str
    links_created: int = 0
    error: str | None = None


@dataclass
class LinkingResult:
    """Outcome of one linking pass over all active mappings."""

    links_created: int = 0
    mappings_processed: int = 0
    mappings: list[MappingLinkResult] = field(default_factory=list)

    @property
    def failed_mappings(self) -> int:
        return sum(1 for item in self.mappings if item.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "links_created": self.links_created,
            "mappings_processed": self.mappings_processed,
            "failed_mappings": self.failed_mappings,
            "mappings": [
                {
                    "mapping_id": str(item.mapping_id),
                    "mapping_name": item.mapping_name,
                    "links_created": item.links_created,
                    "error": item.error,
                }
                for item in self.mappings
            ],
        }


def build_link_metadata(mapping: FieldMapping) -> dict[str, Any]:
    return {
        "mappingId": str(mapping.id),
        "createdBy": LINK_CREATED_BY,
        "sourceSystem": mapping.source_system,
        "sourceField": mapping.source_field,
        "targetSystem": mapping.target_system,
        "targetField": mapping.target_field,
    }


def create_record_link(
    db: Session,
    org_id: UUID,
    source_record_id: UUID,
    target_record_id: UUID,
    *,
    link_name: str | None = None,
    link_metadata: dict[str, Any] | None = None,
    link_type: str = LinkType.FIELD_MAPPING.value,
) -> bool:
    """
    Create a link unless one already exists in either direction.

    Returns True only when a new row was written. A unique-constraint
    conflict from the store counts as "already linked".
    """
    if source_record_id == target_record_id:
        return False

    existing = record_store.find_active_link_between(
        db, org_id, source_record_id, target_record_id
    )
    if existing:
        return False

    try:
        record_store.create_link(
            db,
            org_id=org_id,
            source_record_id=source_record_id,
            target_record_id=target_record_id,
            link_type=link_type,
            link_name=link_name,
            link_metadata=link_metadata,
        )
    except record_store.LinkConflictError:
        logger.info(
            "Link already exists, skipping",
            extra=build_log_context(org_id=org_id, record_id=source_record_id),
        )
        return False
    return True


def process_mapping(db: Session, org_id: UUID, mapping: FieldMapping) -> int:
    """
    Create links for a single field mapping.

    Returns the number of links created. Failures on individual source
    records are logged and skipped.
    """
    source_records = record_store.find_records(db, org_id, source_system=mapping.source_system)
    target_records = record_store.find_records(db, org_id, source_system=mapping.target_system)
    if not source_records or not target_records:
        return 0

    source_field = strip_system_prefix(mapping.source_field)
    target_field = strip_system_prefix(mapping.target_field)
    source_transform = resolve_transform(mapping.transformation_type, mapping.source_transform)
    target_transform = resolve_transform(mapping.transformation_type, mapping.target_transform)

    target_index = build_index(target_records, target_field, target_transform)
    if not target_index:
        return 0

    metadata = build_link_metadata(mapping)
    links_created = 0
    for record in source_records:
        try:
            links_created += _link_source_record(
                db, org_id, record, source_field, source_transform, target_index, mapping, metadata
            )
        except Exception:
            logger.exception(
                "Failed to link record for mapping",
                extra=build_log_context(
                    org_id=org_id,
                    mapping_id=mapping.id,
                    record_id=record.id,
                    source_id=record.source_id,
                ),
            )
    return links_created


def _link_source_record(
    db: Session,
    org_id: UUID,
    record: Record,
    source_field: str,
    source_transform,
    target_index: dict[str, list[UUID]],
    mapping: FieldMapping,
    metadata: dict[str, Any],
) -> int:
    value = derive_match_value(record, source_field, source_transform)
    if value is None:
        return 0

    created = 0
    for target_id in target_index.get(match_key(value), []):
        if create_record_link(
            db,
            org_id,
            record.id,
            target_id,
            link_name=mapping.mapping_name,
            link_metadata=metadata,
        ):
            created += 1
    return created


def process_all_mappings(db: Session, org_id: UUID) -> LinkingResult:
    """
    Run every active field mapping for an organization.

    Each mapping commits on its own; a failing mapping is rolled back,
    reported in the result and does not stop the rest.
    """
    result = LinkingResult()
    mappings = record_store.find_active_field_mappings(db, org_id)

    for mapping in mappings:
        item = MappingLinkResult(mapping_id=mapping.id, mapping_name=mapping.mapping_name)
        try:
            created = process_mapping(db, org_id, mapping)
            db.commit()
            item.links_created = created
        except Exception as exc:
            db.rollback()
            item.error = str(exc) or type(exc).__name__
            logger.exception(
                "Field mapping failed",
                extra=build_log_context(org_id=org_id, mapping_id=item.mapping_id),
            )
        else:
            result.links_created += item.links_created
            result.mappings_processed += 1
        result.mappings.append(item)

    logger.info(
        "Linking pass complete: %s links across %s mappings",
        result.links_created,
        result.mappings_processed,
        extra=build_log_context(org_id=org_id),
    )
    return result
