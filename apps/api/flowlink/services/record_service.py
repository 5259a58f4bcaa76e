"""Record reads and user edits to record custom fields."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from flowlink.db.models import Record
from flowlink.services import record_store
from flowlink.services.record_fields import dump_json_field, load_custom_fields, load_labels


def list_records(db: Session, org_id: UUID, source_system: str | None = None) -> list[Record]:
    return record_store.find_records(db, org_id, source_system=source_system)


def update_custom_fields(db: Session, record: Record, values: dict[str, Any]) -> dict[str, Any]:
    """
    Merge custom-column values into the record's custom_fields.

    Provided keys overwrite, all other keys are kept. Values stored here win
    over system values on later syncs.
    """
    custom_fields = dict(load_custom_fields(record))
    custom_fields.update(values)
    record.custom_fields = dump_json_field(custom_fields)
    db.commit()
    db.refresh(record)
    return custom_fields


def serialize_record(record: Record) -> dict[str, Any]:
    return {
        "id": record.id,
        "source_system": record.source_system,
        "source_id": record.source_id,
        "record_type": record.record_type,
        "title": record.title,
        "status": record.status,
        "priority": record.priority,
        "assignee_name": record.assignee_name,
        "assignee_email": record.assignee_email,
        "reporter_name": record.reporter_name,
        "reporter_email": record.reporter_email,
        "labels": load_labels(record),
        "custom_fields": load_custom_fields(record),
        "source_url": record.source_url,
        "source_created_at": record.source_created_at,
        "source_updated_at": record.source_updated_at,
    }
