"""Field transformation engine for field-mapping comparisons.

Derives a comparison key from a raw field value before records are matched
across systems.

Transformations:
- extract_jira_key: "PAL-14571" from ".../browse/PAL-14571"
- regex_extract: capture group of a case-insensitive pattern
- url_path_extract: one segment of a URL path (last segment by default)
- substring: slice by start plus length or end
- split_extract: one part of a string split on a separator

Transformations are total: a malformed pattern, an unparsable URL or an
out-of-range index yields the original value, never an exception.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeAlias
from urllib.parse import urlsplit

from pydantic import BaseModel, ValidationError

from flowlink.db.enums import TransformationType
from flowlink.schemas.transformations import (
    JiraKeyExtractConfig,
    RegexExtractConfig,
    SplitExtractConfig,
    SubstringConfig,
    TransformationConfig,
    UrlPathExtractConfig,
    decode_transformation_config,
)

logger = logging.getLogger(__name__)

Transformer: TypeAlias = Callable[[Any, Any], Any]

JIRA_KEY_PATTERN = re.compile(r"/browse/([A-Z]+-\d+)", re.IGNORECASE)


# =============================================================================
# Transformers
# =============================================================================


def extract_jira_key(value: Any, config: JiraKeyExtractConfig | None = None) -> Any:
    """Extract "PAL-14571" from "https://x.atlassian.net/browse/PAL-14571"."""
    if not isinstance(value, str):
        return value
    match = JIRA_KEY_PATTERN.search(value)
    return match.group(1) if match else value


def extract_with_regex(value: Any, config: RegexExtractConfig) -> Any:
    """Return the configured capture group, falling back to the whole match."""
    if not isinstance(value, str) or not config.pattern:
        return value

    match = re.search(config.pattern, value, re.IGNORECASE)
    if not match:
        return value

    group = config.group or 1
    captured = match.group(group) if 0 < group <= match.re.groups else None
    return captured or match.group(0)


def extract_url_path(value: Any, config: UrlPathExtractConfig) -> Any:
    """
    Return one non-empty segment of the URL path.

    With from_end, path_index counts back from the end: -1 is the last
    segment, -2 the one before it. Non-negative indexes are out of range.
    """
    if not isinstance(value, str):
        return value

    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        return value

    segments = [segment for segment in parts.path.split("/") if segment]
    if not segments:
        return value

    path_index = -1 if config.path_index is None else config.path_index
    if config.from_end:
        index = len(segments) + path_index
    else:
        index = path_index
    if 0 <= index < len(segments):
        return segments[index]
    return value


def _substring(value: str, start: int, end: int | None = None) -> str:
    # Bounds clamp to the string and swap when reversed.
    size = len(value)
    start = min(max(start, 0), size)
    end = size if end is None else min(max(end, 0), size)
    if start > end:
        start, end = end, start
    return value[start:end]


def extract_substring(value: Any, config: SubstringConfig) -> Any:
    """Slice from start; length takes precedence over end."""
    if not isinstance(value, str):
        return value

    start = config.start or 0
    if config.length is not None:
        return _substring(value, start, start + config.length)
    if config.end is not None:
        return _substring(value, start, config.end)
    return _substring(value, start)


def extract_from_split(value: Any, config: SplitExtractConfig) -> Any:
    """Split on the separator and return the indexed part."""
    if not isinstance(value, str) or not config.separator:
        return value

    parts = value.split(config.separator)
    index = config.index or 0
    if 0 <= index < len(parts) and parts[index]:
        return parts[index]
    return value


TRANSFORMERS: dict[str, Transformer] = {
    TransformationType.EXTRACT_JIRA_KEY.value: extract_jira_key,
    TransformationType.REGEX_EXTRACT.value: extract_with_regex,
    TransformationType.URL_PATH_EXTRACT.value: extract_url_path,
    TransformationType.SUBSTRING.value: extract_substring,
    TransformationType.SPLIT_EXTRACT.value: extract_from_split,
}


# =============================================================================
# Entry points
# =============================================================================


def _kind(transformation_type: str | Enum) -> str:
    if isinstance(transformation_type, Enum):
        return str(transformation_type.value)
    return str(transformation_type)


def coerce_config(raw: Any) -> dict[str, Any]:
    """Accept a config blob as a dict, a JSON string or nothing."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise TypeError(f"Transformation config must be an object, got {type(raw).__name__}")
    return raw


def apply_transformation(
    value: Any,
    transformation_type: str | Enum | None,
    config: TransformationConfig | dict[str, Any] | str | None = None,
) -> Any:
    """
    Apply a transformation to a field value.

    Falsy values and a missing transformation type pass through unchanged.
    Never raises: on any failure the original value is returned.
    """
    if not value or not transformation_type:
        return value

    kind = _kind(transformation_type)
    try:
        if not isinstance(config, BaseModel):
            config = decode_transformation_config(kind, coerce_config(config))
        return TRANSFORMERS[config.type](value, config)
    except Exception as exc:
        logger.warning("Field transformation %s failed, keeping original value: %s", kind, exc)
        return value


@dataclass(frozen=True)
class ResolvedTransform:
    """A transformation kind with its decoded config, ready to apply."""

    transformation_type: str
    config: TransformationConfig

    def apply(self, value: Any) -> Any:
        return apply_transformation(value, self.transformation_type, self.config)


def resolve_transform(
    transformation_type: str | Enum | None,
    transform_blob: dict[str, Any] | str | None,
) -> ResolvedTransform | None:
    """
    Decode one side of a field mapping into a ResolvedTransform.

    The mapping-level transformation_type wins and is configured by the
    side's blob; without it, a blob carrying its own "type" is used.
    Returns None when no transformation applies or the blob cannot be
    decoded.
    """
    try:
        blob = coerce_config(transform_blob)
    except (ValueError, TypeError) as exc:
        logger.warning("Ignoring undecodable transformation config: %s", exc)
        return None

    kind = _kind(transformation_type) if transformation_type else blob.get("type")
    if not kind:
        return None

    try:
        config = decode_transformation_config(str(kind), blob)
    except ValidationError as exc:
        logger.warning("Ignoring invalid %s transformation config: %s", kind, exc)
        return None
    return ResolvedTransform(transformation_type=str(kind), config=config)


# =============================================================================
# Presets / preview
# =============================================================================

TRANSFORMATION_PRESETS: list[dict[str, Any]] = [
    {
        "type": TransformationType.EXTRACT_JIRA_KEY.value,
        "name": "Extract Jira Issue Key",
        "description": "Extract issue key from a Jira URL (e.g., PAL-14571 from https://example.atlassian.net/browse/PAL-14571)",
        "config": None,
    },
    {
        "type": TransformationType.REGEX_EXTRACT.value,
        "name": "Regular Expression Extract",
        "description": "Extract text using a regular expression pattern",
        "config": {"pattern": "", "group": 1},
    },
    {
        "type": TransformationType.URL_PATH_EXTRACT.value,
        "name": "URL Path Extract",
        "description": "Extract part of a URL path",
        "config": {"pathIndex": -1, "fromEnd": True},
    },
    {
        "type": TransformationType.SUBSTRING.value,
        "name": "Substring Extract",
        "description": "Extract a portion of text by position",
        "config": {"start": 0, "length": None},
    },
    {
        "type": TransformationType.SPLIT_EXTRACT.value,
        "name": "Split and Extract",
        "description": "Split text by separator and extract specific part",
        "config": {"separator": "", "index": 0},
    },
]


def get_transformation_presets() -> list[dict[str, Any]]:
    return [dict(preset) for preset in TRANSFORMATION_PRESETS]


def preview_transformation(
    sample_value: Any,
    transformation_type: str | None,
    config: dict[str, Any] | str | None = None,
) -> dict[str, Any]:
    """Dry-run a transformation; reports config problems instead of hiding them."""
    if transformation_type:
        try:
            decode_transformation_config(transformation_type, coerce_config(config))
        except (ValidationError, ValueError, TypeError) as exc:
            return {
                "success": False,
                "result": None,
                "original": sample_value,
                "error": str(exc),
            }
    return {
        "success": True,
        "result": apply_transformation(sample_value, transformation_type, config),
        "original": sample_value,
        "error": None,
    }
