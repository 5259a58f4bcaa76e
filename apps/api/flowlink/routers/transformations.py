"""Transformation presets and previews for the mapping editor."""

from fastapi import APIRouter

from flowlink.schemas.transformations import (
    TransformationPreset,
    TransformationPreviewRequest,
    TransformationPreviewResponse,
)
from flowlink.services import field_transformations

router = APIRouter(prefix="/transformations", tags=["transformations"])


@router.get("/presets", response_model=list[TransformationPreset])
def list_presets():
    return field_transformations.get_transformation_presets()


@router.post("/preview", response_model=TransformationPreviewResponse)
def preview(body: TransformationPreviewRequest):
    return field_transformations.preview_transformation(
        body.sample_value, body.transformation_type, body.config
    )
