"""Integration endpoints: manual sync, sync settings and sync history."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from flowlink.core.deps import get_db, get_organization
from flowlink.db.models import Organization
from flowlink.schemas.sync import SyncConfigRead, SyncConfigUpdate, SyncLogRead, SyncResultRead
from flowlink.services import integration_service, sync_service

router = APIRouter(prefix="/organizations/{org_id}/integrations", tags=["integrations"])


def _system_or_404(system: str) -> str:
    try:
        return integration_service.normalize_system(system)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown system: {system}") from exc


@router.post("/{system}/sync", response_model=SyncResultRead)
async def trigger_sync(
    system: str,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    """Run one sync pass now, bounded by the sync timeout."""
    system = _system_or_404(system)
    try:
        result = await sync_service.sync_organization_with_timeout(db, org.id, system)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return result.to_dict()


@router.get("/{system}/config", response_model=SyncConfigRead, response_model_by_alias=True)
def get_sync_config(
    system: str,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    system = _system_or_404(system)
    credential = integration_service.get_credential(db, org.id, system)
    if not credential:
        raise HTTPException(status_code=404, detail="Integration not configured")
    return integration_service.get_sync_config(credential)


@router.put("/{system}/config", response_model=SyncConfigRead, response_model_by_alias=True)
def update_sync_config(
    system: str,
    body: SyncConfigUpdate,
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    system = _system_or_404(system)
    credential = integration_service.get_credential(db, org.id, system)
    if not credential:
        raise HTTPException(status_code=404, detail="Integration not configured")
    updates = body.model_dump(by_alias=True, exclude_unset=True)
    return integration_service.update_sync_config(db, credential, updates)


@router.get("/{system}/sync-logs", response_model=list[SyncLogRead])
def list_sync_logs(
    system: str,
    limit: int = Query(default=10, ge=1, le=100),
    org: Organization = Depends(get_organization),
    db: Session = Depends(get_db),
):
    system = _system_or_404(system)
    integration = integration_service.get_integration(db, org.id, system)
    if not integration:
        return []
    return integration_service.list_sync_logs(db, integration.id, limit=limit)
