"""CLI tools for running sync and linking by hand."""

import logging
from uuid import UUID

import click

from flowlink.core.async_utils import run_async
from flowlink.db.session import SessionLocal
from flowlink.services import record_linking_service, sync_service


@click.group()
def cli():
    """FlowLink CLI tools."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")


@cli.command()
@click.option("--org-id", required=True, type=click.UUID, help="Organization ID")
@click.option(
    "--system",
    required=True,
    type=click.Choice(["zendesk", "jira"], case_sensitive=False),
    help="External system to sync",
)
@click.option("--timeout", type=float, default=None, help="Override the sync timeout (seconds)")
def sync(org_id: UUID, system: str, timeout: float | None):
    """
    Run one sync pass for an organization.

    Example:
        python -m flowlink.cli sync --org-id <uuid> --system zendesk
    """
    db = SessionLocal()
    try:
        result = run_async(
            sync_service.sync_organization_with_timeout(db, org_id, system, timeout=timeout)
        )
    finally:
        db.close()

    if result.status == "error":
        click.echo(f"❌ Sync failed: {result.error}")
        raise SystemExit(1)
    if result.status == "skipped":
        click.echo(f"→ No active {system} credentials for {org_id}, nothing to do")
        return
    click.echo(
        f"✓ Processed {result.processed} records "
        f"({result.created} created, {result.updated} updated), "
        f"auto-solved {result.auto_solved}"
    )
    if result.failed:
        click.echo(f"  {result.failed} records failed")


@cli.command()
@click.option("--org-id", required=True, type=click.UUID, help="Organization ID")
def link(org_id: UUID):
    """Run every active field mapping for an organization."""
    db = SessionLocal()
    try:
        result = record_linking_service.process_all_mappings(db, org_id)
    finally:
        db.close()

    click.echo(
        f"✓ Created {result.links_created} links across {result.mappings_processed} mappings"
    )
    for item in result.mappings:
        if item.error:
            click.echo(f"❌ {item.mapping_name}: {item.error}")
        else:
            click.echo(f"  {item.mapping_name}: {item.links_created} links")


@cli.command()
def worker():
    """Start the background sync worker."""
    from flowlink.worker import main

    main()


if __name__ == "__main__":
    cli()
