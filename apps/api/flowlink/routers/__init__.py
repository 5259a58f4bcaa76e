"""API routers."""

from flowlink.routers.custom_columns import router as custom_columns_router
from flowlink.routers.field_mappings import router as field_mappings_router
from flowlink.routers.integrations import router as integrations_router
from flowlink.routers.linking import router as linking_router
from flowlink.routers.records import router as records_router
from flowlink.routers.transformations import router as transformations_router

__all__ = [
    "custom_columns_router",
    "field_mappings_router",
    "integrations_router",
    "linking_router",
    "records_router",
    "transformations_router",
]
