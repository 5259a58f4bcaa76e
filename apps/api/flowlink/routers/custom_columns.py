"""Custom column endpoints for org-scoped dashboard columns."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from flowlink.core.deps import get_db, get_organization
from flowlink.db.models import Organization
from flowlink.schemas.custom_column import CustomColumnCreate, CustomColumnRead
from flowlink.services import custom_column_service

router = APIRouter(prefix="/organizations/{org_id}/custom-columns", tags=["custom-columns"])


@router.get("", response_model=list[CustomColumnRead])
def list_custom_columns(
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    return custom_column_service.list_custom_columns(db, org.id)


@router.post("", response_model=CustomColumnRead, status_code=201)
def create_custom_column(
    body: CustomColumnCreate,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    try:
        column = custom_column_service.create_custom_column(
            db,
            org.id,
            name=body.name,
            label=body.label,
            column_type=body.type,
            default_value=body.default_value,
            select_options=body.select_options,
            is_required=body.is_required,
        )
    except LookupError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return column


@router.delete("/{column_id}", status_code=204)
def delete_custom_column(
    column_id: UUID,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    column = custom_column_service.get_custom_column(db, org.id, column_id)
    if not column:
        raise HTTPException(status_code=404, detail="Custom column not found")
    custom_column_service.delete_custom_column(db, column)
