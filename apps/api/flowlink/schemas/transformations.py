"""Typed configuration for field transformations.

Each transformation kind has its own config model; the `type` field
discriminates the union. Keys are accepted in snake_case or in the
camelCase the dashboard sends (pathIndex, fromEnd).
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _TransformConfigBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JiraKeyExtractConfig(_TransformConfigBase):
    type: Literal["extract_jira_key"] = "extract_jira_key"


class RegexExtractConfig(_TransformConfigBase):
    type: Literal["regex_extract"] = "regex_extract"
    pattern: str = ""
    group: int | None = 1


class UrlPathExtractConfig(_TransformConfigBase):
    type: Literal["url_path_extract"] = "url_path_extract"
    path_index: int | None = Field(default=-1, alias="pathIndex")
    from_end: bool = Field(default=True, alias="fromEnd")


class SubstringConfig(_TransformConfigBase):
    type: Literal["substring"] = "substring"
    start: int | None = 0
    length: int | None = None
    end: int | None = None


class SplitExtractConfig(_TransformConfigBase):
    type: Literal["split_extract"] = "split_extract"
    separator: str = ""
    index: int | None = 0


TransformationConfig = Annotated[
    Union[
        JiraKeyExtractConfig,
        RegexExtractConfig,
        UrlPathExtractConfig,
        SubstringConfig,
        SplitExtractConfig,
    ],
    Field(discriminator="type"),
]

_config_adapter: TypeAdapter[TransformationConfig] = TypeAdapter(TransformationConfig)


def decode_transformation_config(
    transformation_type: str, config: dict[str, Any] | None = None
) -> TransformationConfig:
    """
    Decode a raw config blob for the given kind.

    The kind always wins over any `type` key inside the blob.
    Raises pydantic.ValidationError for unknown kinds or malformed values.
    """
    payload = {k: v for k, v in (config or {}).items() if v is not None}
    payload["type"] = transformation_type
    return _config_adapter.validate_python(payload)


class TransformationPreset(BaseModel):
    """Dashboard preset describing one transformation kind."""

    type: str
    name: str
    description: str
    config: dict[str, Any] | None


class TransformationPreviewRequest(BaseModel):
    """Dry-run a transformation against a sample value."""

    sample_value: Any = None
    transformation_type: str | None = None
    config: dict[str, Any] | None = None


class TransformationPreviewResponse(BaseModel):
    success: bool
    result: Any = None
    original: Any = None
    error: str | None = None
