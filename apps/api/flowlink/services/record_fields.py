"""Field access on stored records.

Field names from mappings and dashboard columns are resolved once into a
FieldRef: either a standard record attribute (through a fixed alias table)
or a key in the record's custom_fields JSON.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeAlias

from flowlink.core.structured_logging import build_log_context
from flowlink.db.enums import SourceSystem

logger = logging.getLogger(__name__)

CUSTOM_FIELD_PREFIX = "custom_"


class StandardField(str, Enum):
    """First-class record attributes reachable by alias."""

    SOURCE_ID = "source_id"
    TITLE = "title"
    DESCRIPTION = "description"
    STATUS = "status"
    PRIORITY = "priority"
    ASSIGNEE = "assignee"
    REPORTER = "reporter"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


FIELD_ALIASES: dict[str, StandardField] = {
    "id": StandardField.SOURCE_ID,
    "key": StandardField.SOURCE_ID,
    "title": StandardField.TITLE,
    "subject": StandardField.TITLE,
    "summary": StandardField.TITLE,
    "description": StandardField.DESCRIPTION,
    "status": StandardField.STATUS,
    "state": StandardField.STATUS,
    "priority": StandardField.PRIORITY,
    "assignee": StandardField.ASSIGNEE,
    "owner": StandardField.ASSIGNEE,
    "reporter": StandardField.REPORTER,
    "requester": StandardField.REPORTER,
    "author": StandardField.REPORTER,
    "user": StandardField.REPORTER,
    "from": StandardField.REPORTER,
    "created_at": StandardField.CREATED_AT,
    "created": StandardField.CREATED_AT,
    "timestamp": StandardField.CREATED_AT,
    "created_datetime": StandardField.CREATED_AT,
    "updated_at": StandardField.UPDATED_AT,
    "updated": StandardField.UPDATED_AT,
}

STANDARD_FIELD_GETTERS: dict[StandardField, Callable[[Any], Any]] = {
    StandardField.SOURCE_ID: lambda record: record.source_id,
    StandardField.TITLE: lambda record: record.title,
    StandardField.DESCRIPTION: lambda record: record.description,
    StandardField.STATUS: lambda record: record.status,
    StandardField.PRIORITY: lambda record: record.priority,
    StandardField.ASSIGNEE: lambda record: record.assignee_name or record.assignee_email,
    StandardField.REPORTER: lambda record: record.reporter_name or record.reporter_email,
    StandardField.CREATED_AT: lambda record: record.source_created_at,
    StandardField.UPDATED_AT: lambda record: record.source_updated_at,
}


@dataclass(frozen=True)
class StandardFieldRef:
    field: StandardField


@dataclass(frozen=True)
class CustomFieldRef:
    key: str


FieldRef: TypeAlias = StandardFieldRef | CustomFieldRef


SYSTEM_PREFIXES = frozenset(system.value for system in SourceSystem)


def strip_system_prefix(field_name: str) -> str:
    """
    "zendesk.custom_123" -> "custom_123".

    Only a leading known system name is dropped; dots elsewhere in the name
    (e.g. "custom_via.channel") are part of the field.
    """
    prefix, dot, rest = field_name.partition(".")
    if dot and rest and prefix.lower() in SYSTEM_PREFIXES:
        return rest
    return field_name


def parse_field_ref(field_name: str) -> FieldRef:
    """Resolve a de-prefixed field name to a standard attribute or a custom key."""
    if field_name.startswith(CUSTOM_FIELD_PREFIX):
        return CustomFieldRef(key=field_name[len(CUSTOM_FIELD_PREFIX):])
    standard = FIELD_ALIASES.get(field_name)
    if standard is not None:
        return StandardFieldRef(field=standard)
    return CustomFieldRef(key=field_name)


# =============================================================================
# JSON side-table helpers
# =============================================================================


def load_custom_fields(record: Any) -> dict[str, Any]:
    """
    Parse a record's custom_fields blob.

    Returns {} when absent or unparsable; parse failures are logged, not raised.
    """
    raw = getattr(record, "custom_fields", None)
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Unparsable custom_fields on record",
            extra=build_log_context(record_id=getattr(record, "id", None)),
        )
        return {}
    if not isinstance(parsed, dict):
        logger.warning(
            "custom_fields on record is not an object",
            extra=build_log_context(record_id=getattr(record, "id", None)),
        )
        return {}
    return parsed


def load_labels(record: Any) -> list[str]:
    """Parse a record's labels blob; [] when absent or unparsable."""
    raw = getattr(record, "labels", None)
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Unparsable labels on record",
            extra=build_log_context(record_id=getattr(record, "id", None)),
        )
        return []
    return parsed if isinstance(parsed, list) else []


def dump_json_field(value: dict[str, Any] | list[Any] | None) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)


# =============================================================================
# Extraction
# =============================================================================


def resolve_field_value(record: Any, ref: FieldRef) -> Any:
    if isinstance(ref, StandardFieldRef):
        return STANDARD_FIELD_GETTERS[ref.field](record)
    custom_fields = load_custom_fields(record)
    if not custom_fields:
        return None
    return custom_fields.get(ref.key)


def extract_field_value(record: Any, field_name: str) -> Any:
    """
    Return the current value of a field on a record, or None.

    field_name must already be stripped of any "system." prefix.
    """
    return resolve_field_value(record, parse_field_ref(field_name))
