"""FastAPI dependencies for database access and organization scoping."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from flowlink.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_organization(org_id: UUID, db: Session = Depends(get_db)):
    """Resolve the organization from the path, 404 if it does not exist."""
    from flowlink.db.models import Organization

    org = db.get(Organization, org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org
