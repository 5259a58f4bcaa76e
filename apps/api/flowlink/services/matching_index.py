"""Case-insensitive value -> record id index for field-mapping matches."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable
from uuid import UUID

from flowlink.core.structured_logging import build_log_context
from flowlink.services.field_transformations import ResolvedTransform
from flowlink.services.record_fields import extract_field_value

logger = logging.getLogger(__name__)

MatchIndex = dict[str, list[UUID]]


def match_key(value: Any) -> str:
    """Normalize a (transformed) field value into an index key."""
    return str(value).lower()


def derive_match_value(
    record: Any, field_name: str, transform: ResolvedTransform | None = None
) -> Any:
    """Extract a field and apply the transform; falsy at either step yields None."""
    value = extract_field_value(record, field_name)
    if not value:
        return None
    if transform is not None:
        value = transform.apply(value)
    return value or None


def build_index(
    records: Iterable[Any],
    field_name: str,
    transform: ResolvedTransform | None = None,
) -> MatchIndex:
    """
    Index records by their extracted + transformed + lower-cased field value.

    Records whose value is empty before or after transformation get no entry.
    A record that fails to extract is logged and skipped.
    """
    index: defaultdict[str, list[UUID]] = defaultdict(list)
    for record in records:
        try:
            value = derive_match_value(record, field_name, transform)
        except Exception:
            logger.exception(
                "Failed to index record",
                extra=build_log_context(record_id=getattr(record, "id", None)),
            )
            continue
        if value is None:
            continue
        index[match_key(value)].append(record.id)
    return dict(index)
