"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from flowlink.core.config import settings
from flowlink.db.session import engine
from flowlink.routers import (
    custom_columns_router,
    field_mappings_router,
    integrations_router,
    linking_router,
    records_router,
    transformations_router,
)

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="FlowLink API",
    description="Cross-system ticket aggregation and record linking API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

# ============================================================================
# Routers
# ============================================================================

app.include_router(field_mappings_router)
app.include_router(linking_router)
app.include_router(integrations_router)
app.include_router(records_router)
app.include_router(custom_columns_router)
app.include_router(transformations_router)


# ============================================================================
# Health
# ============================================================================


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
