"""
Sync service for pulling external records into the record store.

One sync pass for an organization and system:
1. Load the active credential (no credential -> skipped, not an error).
2. Fetch every page from the external system.
3. Upsert each fetched record in batches, merging custom fields so keys
   already stored on the record always survive.
4. Auto-solve stored records that vanished from the fetch, unless the
   credential's autoSolveMissingTickets is explicitly false.
5. Write one sync log entry with the counts, or the error.

Upserts are committed per batch; a pass that fails or times out part way
keeps what it already wrote and the next pass reconciles the rest.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from flowlink.core.async_utils import run_with_timeout
from flowlink.core.config import settings
from flowlink.core.structured_logging import build_log_context
from flowlink.db.enums import SYNC_TYPE_BY_SYSTEM, SYNCABLE_SYSTEMS, SourceSystem, SyncStatus
from flowlink.db.models import Integration, Record, SyncLog
from flowlink.services import integration_service, record_store
from flowlink.services.integration_clients import (
    ExternalRecord,
    client_for_credential,
    fetch_all_pages,
)
from flowlink.services.record_fields import dump_json_field, load_custom_fields

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("solved", "closed")
AUTO_SOLVED_STATUS = "solved"
AUTO_SOLVE_REASON = "Record no longer present in the latest sync"


@dataclass
class SyncResult:
    """Outcome of one sync pass."""

    status: str
    system: str
    processed: int = 0
    created: int = 0
    updated: int = 0
    auto_solved: int = 0
    failed: int = 0
    error: str | None = None
    duration_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.status != SyncStatus.ERROR.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "system": self.system,
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "auto_solved": self.auto_solved,
            "failed": self.failed,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class BatchCounts:
    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0


# =============================================================================
# Merge / config helpers
# =============================================================================


def merge_custom_fields(
    system_fields: dict[str, Any],
    fetched_custom_fields: dict[str, Any],
    stored_custom_fields: dict[str, Any],
) -> dict[str, Any]:
    """
    Merge custom fields for an upsert.

    Later sources win: system < fetched custom < stored. A key already on the
    stored record keeps its stored value even when the system owns that key.
    """
    return {**system_fields, **fetched_custom_fields, **stored_custom_fields}


def is_auto_solve_enabled(config: dict[str, Any] | None) -> bool:
    """Enabled unless autoSolveMissingTickets is explicitly false."""
    return (config or {}).get("autoSolveMissingTickets") is not False


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Record upsert
# =============================================================================


def build_update_values(external: ExternalRecord, custom_fields: dict[str, Any]) -> dict[str, Any]:
    """Columns a re-sync is allowed to overwrite."""
    return {
        "title": external.title,
        "description": external.description,
        "status": external.status,
        "priority": external.priority,
        "assignee_name": external.assignee_name,
        "assignee_email": external.assignee_email,
        "reporter_name": external.reporter_name,
        "reporter_email": external.reporter_email,
        "labels": dump_json_field(external.labels),
        "custom_fields": dump_json_field(custom_fields),
        "source_url": external.source_url,
        "source_updated_at": external.source_updated_at,
    }


def upsert_external_record(
    db: Session,
    org_id: UUID,
    integration: Integration,
    external: ExternalRecord,
) -> tuple[Record, bool]:
    """
    Upsert one fetched record inside a savepoint.

    Returns (record, created). A failure rolls back only this record.
    """
    with db.begin_nested():
        existing = record_store.find_record_by_source(db, integration.id, external.source_id)
        stored = load_custom_fields(existing) if existing else {}
        merged = merge_custom_fields(external.system_fields, external.custom_fields, stored)
        update_values = build_update_values(external, merged)
        create_values = {
            **update_values,
            "organization_id": org_id,
            "source_system": integration.system_type,
            "record_type": external.record_type,
            "source_created_at": external.source_created_at,
        }
        return record_store.upsert_record(
            db,
            integration_id=integration.id,
            source_id=external.source_id,
            create_data=create_values,
            update_data=update_values,
        )


async def process_records_in_batches(
    db: Session,
    org_id: UUID,
    integration: Integration,
    records: list[ExternalRecord],
    *,
    batch_size: int | None = None,
    batch_delay: float | None = None,
) -> BatchCounts:
    """
    Upsert fetched records in fixed-size batches, committing each batch.

    A failing record is logged and counted; the rest of its batch continues.
    """
    size = max(1, batch_size or settings.SYNC_BATCH_SIZE)
    delay = settings.SYNC_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
    counts = BatchCounts()

    for start in range(0, len(records), size):
        for external in records[start : start + size]:
            try:
                _, created = upsert_external_record(db, org_id, integration, external)
            except Exception:
                counts.failed += 1
                logger.exception(
                    "Failed to upsert fetched record",
                    extra=build_log_context(
                        org_id=org_id,
                        integration_id=integration.id,
                        source_id=external.source_id,
                    ),
                )
                continue
            counts.processed += 1
            if created:
                counts.created += 1
            else:
                counts.updated += 1
        db.commit()

        if delay and start + size < len(records):
            await asyncio.sleep(delay)

    return counts


# =============================================================================
# Missing-record reconciliation
# =============================================================================


def auto_solve_missing_records(
    db: Session,
    org_id: UUID,
    integration: Integration,
    seen_source_ids: Iterable[str],
) -> int:
    """
    Mark stored, non-terminal records absent from the fetch as solved.

    The previous status, a timestamp and the reason are added to
    custom_fields. Returns the number of records transitioned.
    """
    seen = set(seen_source_ids)
    candidates = record_store.find_records(
        db, org_id, integration_id=integration.id, status_not_in=TERMINAL_STATUSES
    )
    solved_at = _now().isoformat()
    solved = 0

    for record in candidates:
        if record.source_id in seen:
            continue
        try:
            with db.begin_nested():
                custom_fields = dict(load_custom_fields(record))
                custom_fields.update(
                    previous_status=record.status,
                    auto_solved_at=solved_at,
                    auto_solved_reason=AUTO_SOLVE_REASON,
                )
                record.status = AUTO_SOLVED_STATUS
                record.custom_fields = dump_json_field(custom_fields)
                db.flush()
        except Exception:
            logger.exception(
                "Failed to auto-solve record",
                extra=build_log_context(
                    org_id=org_id, integration_id=integration.id, record_id=record.id
                ),
            )
            continue
        solved += 1

    db.commit()
    if solved:
        logger.info(
            "Auto-solved %s records missing from sync",
            solved,
            extra=build_log_context(org_id=org_id, integration_id=integration.id),
        )
    return solved


# =============================================================================
# Sync log
# =============================================================================


def record_sync_log(
    db: Session,
    integration: Integration,
    result: SyncResult,
    *,
    started_at: datetime,
) -> SyncLog:
    """Persist the pass summary and stamp the integration."""
    completed_at = _now()
    system = integration.system_type
    sync_type = SYNC_TYPE_BY_SYSTEM.get(SourceSystem(system), system)

    if result.status == SyncStatus.ERROR.value:
        message = result.error or "Sync failed"
        integration.last_error = message
        integration.last_error_at = completed_at
    else:
        message = (
            f"Processed {result.processed} records "
            f"({result.created} created, {result.updated} updated), "
            f"auto-solved {result.auto_solved}"
        )
        if result.failed:
            message += f", {result.failed} failed"
        integration.last_sync_at = completed_at
        integration.last_error = None
        integration.last_error_at = None

    log = SyncLog(
        integration_id=integration.id,
        sync_type=getattr(sync_type, "value", sync_type),
        status=result.status,
        message=message,
        records_processed=result.processed,
        records_created=result.created,
        records_updated=result.updated,
        records_auto_solved=result.auto_solved,
        records_failed=result.failed,
        duration_ms=result.duration_ms,
        started_at=started_at,
        completed_at=completed_at,
    )
    db.add(log)
    db.commit()
    return log


# =============================================================================
# Sync pass
# =============================================================================


async def sync_organization(
    db: Session,
    org_id: UUID,
    system: str,
    *,
    client: Any = None,
    http_client: httpx.AsyncClient | None = None,
    batch_size: int | None = None,
    batch_delay: float | None = None,
    page_delay: float | None = None,
) -> SyncResult:
    """
    Run one sync pass for an organization's integration.

    client overrides the fetch client built from the credential (anything
    with an async fetch_page(cursor)). Fetch and processing failures are
    returned as an error SyncResult and logged to the sync log.
    """
    system = integration_service.normalize_system(system)
    if system not in {item.value for item in SYNCABLE_SYSTEMS}:
        raise ValueError(f"Sync is not supported for {system}")

    log_context = build_log_context(org_id=org_id, system=system)
    credential = integration_service.get_active_credential(db, org_id, system)
    if not credential:
        logger.info("No active credentials, skipping sync", extra=log_context)
        return SyncResult(status=SyncStatus.SKIPPED.value, system=system)

    started_at = _now()
    started = time.monotonic()
    integration = integration_service.get_or_create_integration(
        db, org_id, system, config=credential.custom_config
    )
    db.commit()

    try:
        fetched = await _fetch_external_records(credential, client, http_client, page_delay)
        counts = await process_records_in_batches(
            db, org_id, integration, fetched, batch_size=batch_size, batch_delay=batch_delay
        )
        auto_solved = 0
        # An empty fetch never auto-solves
        if fetched and is_auto_solve_enabled(credential.custom_config):
            auto_solved = auto_solve_missing_records(
                db, org_id, integration, (item.source_id for item in fetched)
            )
        result = SyncResult(
            status=SyncStatus.SUCCESS.value,
            system=system,
            processed=counts.processed,
            created=counts.created,
            updated=counts.updated,
            auto_solved=auto_solved,
            failed=counts.failed,
        )
    except Exception as exc:
        db.rollback()
        logger.exception("Sync failed", extra=log_context)
        result = SyncResult(
            status=SyncStatus.ERROR.value,
            system=system,
            error=str(exc) or type(exc).__name__,
        )

    result.duration_ms = int((time.monotonic() - started) * 1000)
    record_sync_log(db, integration, result, started_at=started_at)
    logger.info(
        "Sync finished: status=%s processed=%s auto_solved=%s",
        result.status,
        result.processed,
        result.auto_solved,
        extra=log_context,
    )
    return result


async def _fetch_external_records(
    credential: Any,
    client: Any,
    http_client: httpx.AsyncClient | None,
    page_delay: float | None,
) -> list[ExternalRecord]:
    if client is not None:
        return await fetch_all_pages(client.fetch_page, page_delay=page_delay)

    owned = client_for_credential(credential, http_client=http_client)
    async with owned:
        return await fetch_all_pages(owned.fetch_page, page_delay=page_delay)


async def sync_organization_with_timeout(
    db: Session,
    org_id: UUID,
    system: str,
    *,
    timeout: float | None = None,
    **kwargs: Any,
) -> SyncResult:
    """
    sync_organization bounded by a wall-clock ceiling.

    On timeout the pass is abandoned: work already committed stays, the
    open transaction is rolled back and an error sync log is written.
    """
    ceiling = settings.SYNC_TIMEOUT_SECONDS if timeout is None else timeout
    system = integration_service.normalize_system(system)
    started_at = _now()
    try:
        return await run_with_timeout(
            sync_organization(db, org_id, system, **kwargs), timeout=ceiling
        )
    except TimeoutError:
        db.rollback()
        message = f"Sync timed out after {ceiling:g} seconds"
        logger.error(message, extra=build_log_context(org_id=org_id, system=system))
        result = SyncResult(status=SyncStatus.ERROR.value, system=system, error=message)
        result.duration_ms = int(ceiling * 1000)
        integration = integration_service.get_integration(db, org_id, system)
        if integration:
            record_sync_log(db, integration, result, started_at=started_at)
        return result
