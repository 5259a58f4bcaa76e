"""Record linking endpoints: run a linking pass, list and remove links."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from flowlink.core.deps import get_db, get_organization
from flowlink.db.models import Organization
from flowlink.schemas.linking import LinkingResultRead, RecordLinkRead
from flowlink.services import record_linking_service, record_store

router = APIRouter(prefix="/organizations/{org_id}", tags=["linking"])


@router.post("/linking/process", response_model=LinkingResultRead)
def process_linking(
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    """Run every active field mapping once. Safe to repeat."""
    result = record_linking_service.process_all_mappings(db, org.id)
    return result.to_dict()


@router.get("/links", response_model=list[RecordLinkRead])
def list_links(
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    return record_store.list_active_links(db, org.id)


@router.delete("/links/{link_id}", status_code=204)
def delete_link(
    link_id: UUID,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    link = record_store.get_link(db, org.id, link_id)
    if not link or not link.is_active:
        raise HTTPException(status_code=404, detail="Link not found")
    record_store.deactivate_link(db, link)
