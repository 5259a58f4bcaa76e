"""Field mapping endpoints for org-scoped link rules."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from flowlink.core.deps import get_db, get_organization
from flowlink.db.models import Organization
from flowlink.schemas.field_mapping import FieldMappingCreate, FieldMappingRead, FieldMappingUpdate
from flowlink.services import field_mapping_service

router = APIRouter(prefix="/organizations/{org_id}/field-mappings", tags=["field-mappings"])


@router.get("", response_model=list[FieldMappingRead])
def list_field_mappings(
    include_inactive: bool = False,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    return field_mapping_service.list_field_mappings(db, org.id, include_inactive=include_inactive)


@router.post("", response_model=FieldMappingRead, status_code=201)
def create_field_mapping(
    body: FieldMappingCreate,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    try:
        mapping = field_mapping_service.create_field_mapping(
            db,
            org.id,
            mapping_name=body.mapping_name,
            source_system=body.source_system,
            source_field=body.source_field,
            target_system=body.target_system,
            target_field=body.target_field,
            transformation_type=body.transformation_type,
            source_transform=body.source_transform,
            target_transform=body.target_transform,
        )
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return mapping


@router.patch("/{mapping_id}", response_model=FieldMappingRead)
def update_field_mapping(
    mapping_id: UUID,
    body: FieldMappingUpdate,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    mapping = field_mapping_service.get_field_mapping(db, org.id, mapping_id)
    if not mapping:
        raise HTTPException(status_code=404, detail="Field mapping not found")
    try:
        mapping = field_mapping_service.update_field_mapping(
            db, mapping, body.model_dump(exclude_unset=True)
        )
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return mapping


@router.delete("/{mapping_id}", status_code=204)
def delete_field_mapping(
    mapping_id: UUID,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    mapping = field_mapping_service.get_field_mapping(db, org.id, mapping_id)
    if not mapping:
        raise HTTPException(status_code=404, detail="Field mapping not found")
    field_mapping_service.deactivate_field_mapping(db, mapping)
