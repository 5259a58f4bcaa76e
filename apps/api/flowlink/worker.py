"""
Background worker for scheduled record sync.

Usage:
    python -m flowlink.worker

Every SYNC_INTERVAL_SECONDS the worker runs one sync pass per active
credential (each bounded by SYNC_TIMEOUT_SECONDS), then one linking pass
per organization it synced. For production, run this as a separate
process (e.g., systemd service, Docker container).
"""

import asyncio
import logging
from uuid import UUID

from flowlink.core.config import settings
from flowlink.core.structured_logging import build_log_context
from flowlink.db.enums import SYNCABLE_SYSTEMS
from flowlink.db.session import SessionLocal
from flowlink.services import integration_service, record_linking_service, sync_service

logger = logging.getLogger(__name__)


def _syncable_credentials(db) -> list[tuple[UUID, str]]:
    credentials = integration_service.list_active_credentials(
        db, systems=tuple(system.value for system in SYNCABLE_SYSTEMS)
    )
    return [(credential.organization_id, credential.system_type) for credential in credentials]


async def run_sync_cycle(session_factory=SessionLocal) -> dict[str, int]:
    """
    Run one full cycle: sync every active integration, then link.

    A failing organization is logged and the cycle moves on.
    """
    summary = {"synced": 0, "failed": 0, "linked_orgs": 0, "links_created": 0}

    with session_factory() as db:
        targets = _syncable_credentials(db)

    if targets:
        logger.info(f"Found {len(targets)} active integrations to sync")

    touched_orgs: list[UUID] = []
    for org_id, system in targets:
        context = build_log_context(org_id=org_id, system=system)
        with session_factory() as db:
            try:
                result = await sync_service.sync_organization_with_timeout(db, org_id, system)
            except Exception:
                summary["failed"] += 1
                logger.exception("Sync crashed", extra=context)
                continue
        if result.ok:
            summary["synced"] += 1
        else:
            summary["failed"] += 1
        if org_id not in touched_orgs:
            touched_orgs.append(org_id)

    if not settings.LINKING_AFTER_SYNC:
        return summary

    for org_id in touched_orgs:
        with session_factory() as db:
            try:
                linking = record_linking_service.process_all_mappings(db, org_id)
            except Exception:
                logger.exception("Linking pass crashed", extra=build_log_context(org_id=org_id))
                continue
        summary["linked_orgs"] += 1
        summary["links_created"] += linking.links_created

    return summary


async def worker_loop() -> None:
    """Main worker loop - runs a sync cycle, then sleeps for the interval."""
    logger.info(
        f"Worker starting (interval: {settings.SYNC_INTERVAL_SECONDS}s, "
        f"timeout: {settings.SYNC_TIMEOUT_SECONDS}s, batch size: {settings.SYNC_BATCH_SIZE})"
    )

    while True:
        try:
            summary = await run_sync_cycle()
            logger.info(
                "Sync cycle complete: synced=%s failed=%s links_created=%s",
                summary["synced"],
                summary["failed"],
                summary["links_created"],
            )
        except Exception as e:
            logger.error(f"Error in worker loop: {e}")

        await asyncio.sleep(settings.SYNC_INTERVAL_SECONDS)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> None:
    """Entry point for the worker."""
    configure_logging()
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")


if __name__ == "__main__":
    main()
