"""Structured logging helpers."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    org_id: UUID | str | None = None,
    integration_id: UUID | str | None = None,
    system: str | None = None,
    mapping_id: UUID | str | None = None,
    record_id: UUID | str | None = None,
    source_id: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict holding only the identifiers that are set."""
    context: dict[str, Any] = {}
    if org_id:
        context["org_id"] = str(org_id)
    if integration_id:
        context["integration_id"] = str(integration_id)
    if system:
        context["system"] = system
    if mapping_id:
        context["mapping_id"] = str(mapping_id)
    if record_id:
        context["record_id"] = str(record_id)
    if source_id:
        context["source_id"] = source_id
    return context
