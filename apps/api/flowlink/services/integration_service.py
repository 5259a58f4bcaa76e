"""Integration credentials, integration rows, sync settings and sync logs."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from flowlink.db.enums import SourceSystem
from flowlink.db.models import Integration, IntegrationCredential, SyncLog

SYSTEM_DISPLAY_NAMES = {
    SourceSystem.ZENDESK.value: "Zendesk",
    SourceSystem.JIRA.value: "Jira",
    SourceSystem.SLACK.value: "Slack",
    SourceSystem.GITHUB.value: "GitHub",
    SourceSystem.SALESFORCE.value: "Salesforce",
    SourceSystem.TEAMS.value: "Microsoft Teams",
}

# Sync settings editable from the dashboard; everything else in custom_config
# (Jira url, projectKey, ...) is left alone by updates.
SYNC_CONFIG_KEYS = ("autoSolveMissingTickets", "searchQuery")


def normalize_system(system: str | SourceSystem) -> str:
    """Validate and lower-case a system name; raises ValueError if unknown."""
    value = system.value if isinstance(system, SourceSystem) else str(system).lower()
    return SourceSystem(value).value


# =============================================================================
# Credentials
# =============================================================================


def get_credential(db: Session, org_id: UUID, system: str) -> IntegrationCredential | None:
    return (
        db.query(IntegrationCredential)
        .filter(
            IntegrationCredential.organization_id == org_id,
            IntegrationCredential.system_type == system,
        )
        .first()
    )


def get_active_credential(db: Session, org_id: UUID, system: str) -> IntegrationCredential | None:
    credential = get_credential(db, org_id, system)
    if not credential or not credential.is_active:
        return None
    return credential


def list_active_credentials(
    db: Session, systems: tuple[str, ...] | None = None
) -> list[IntegrationCredential]:
    query = db.query(IntegrationCredential).filter(IntegrationCredential.is_active.is_(True))
    if systems:
        query = query.filter(IntegrationCredential.system_type.in_(systems))
    return query.order_by(
        IntegrationCredential.organization_id, IntegrationCredential.system_type
    ).all()


def upsert_credential(
    db: Session,
    org_id: UUID,
    system: str,
    *,
    subdomain: str | None = None,
    email: str | None = None,
    api_token: str | None = None,
    custom_config: dict[str, Any] | None = None,
    is_active: bool = True,
) -> IntegrationCredential:
    credential = get_credential(db, org_id, system)
    if not credential:
        credential = IntegrationCredential(organization_id=org_id, system_type=system)
        db.add(credential)
    credential.subdomain = subdomain
    credential.email = email
    if api_token:
        credential.api_token = api_token
    if custom_config is not None:
        credential.custom_config = custom_config
    credential.is_active = is_active
    db.commit()
    db.refresh(credential)
    return credential


# =============================================================================
# Sync settings
# =============================================================================


def get_sync_config(credential: IntegrationCredential) -> dict[str, Any]:
    config = credential.custom_config or {}
    return {
        "autoSolveMissingTickets": config.get("autoSolveMissingTickets") is not False,
        "searchQuery": config.get("searchQuery"),
    }


def update_sync_config(
    db: Session, credential: IntegrationCredential, updates: dict[str, Any]
) -> dict[str, Any]:
    """Merge sync settings into custom_config; unrelated keys are preserved."""
    config = dict(credential.custom_config or {})
    for key in SYNC_CONFIG_KEYS:
        if key in updates:
            config[key] = updates[key]
    # Reassign so the JSON column is flagged dirty
    credential.custom_config = config
    db.commit()
    db.refresh(credential)
    return get_sync_config(credential)


# =============================================================================
# Integrations
# =============================================================================


def get_integration(db: Session, org_id: UUID, system: str) -> Integration | None:
    return (
        db.query(Integration)
        .filter(Integration.organization_id == org_id, Integration.system_type == system)
        .first()
    )


def get_or_create_integration(
    db: Session, org_id: UUID, system: str, config: dict[str, Any] | None = None
) -> Integration:
    integration = get_integration(db, org_id, system)
    if integration:
        return integration

    integration = Integration(
        organization_id=org_id,
        system_type=system,
        system_name=SYSTEM_DISPLAY_NAMES.get(system, system.title()),
        config=config or {},
        is_active=True,
    )
    db.add(integration)
    db.flush()
    return integration


def list_sync_logs(db: Session, integration_id: UUID, limit: int = 10) -> list[SyncLog]:
    return (
        db.query(SyncLog)
        .filter(SyncLog.integration_id == integration_id)
        .order_by(SyncLog.started_at.desc())
        .limit(limit)
        .all()
    )
