"""Record endpoints: dashboard listing and custom-column edits."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from flowlink.core.deps import get_db, get_organization
from flowlink.db.models import Organization
from flowlink.schemas.record import CustomFieldsResponse, CustomFieldsUpdate, RecordRead
from flowlink.services import record_service, record_store

router = APIRouter(prefix="/organizations/{org_id}/records", tags=["records"])


@router.get("", response_model=list[RecordRead])
def list_records(
    source_system: str | None = None,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    records = record_service.list_records(db, org.id, source_system=source_system)
    return [record_service.serialize_record(record) for record in records]


@router.put("/{record_id}/custom-fields", response_model=CustomFieldsResponse)
def update_custom_fields(
    record_id: UUID,
    body: CustomFieldsUpdate,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    record = record_store.find_record_by_id(db, record_id, org_id=org.id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    custom_fields = record_service.update_custom_fields(db, record, body.custom_fields)
    return {"record_id": record.id, "custom_fields": custom_fields}
