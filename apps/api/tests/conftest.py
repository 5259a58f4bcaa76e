"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with a savepoint session (rollback after each test)
- Organization, integration and record factories
- HTTPX AsyncClient over the ASGI app
"""
import os
import uuid
from typing import AsyncGenerator, Callable, Generator

import pytest
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

# Settings are read at import time; point them at a throwaway database first.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("FERNET_KEY", Fernet.generate_key().decode())
os.environ["SYNC_BATCH_DELAY_SECONDS"] = "0"
os.environ["SYNC_PAGE_DELAY_SECONDS"] = "0"

from flowlink.core.deps import get_db
from flowlink.db.base import Base
from flowlink.db.models import Integration, IntegrationCredential, Organization, Record
from flowlink.db.session import SessionLocal, engine
from flowlink.main import app
from flowlink.services.integration_service import SYSTEM_DISPLAY_NAMES
from flowlink.services.record_fields import dump_json_field

Base.metadata.create_all(engine)


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session inside an outer transaction.

    App code may commit() and rollback(); both only act on a savepoint,
    and the outer transaction is rolled back at the end of the test.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization."""
    org = Organization(
        id=uuid.uuid4(),
        name="Test Organization",
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def make_integration(db: Session, test_org: Organization) -> Callable[..., Integration]:
    def _make(system: str = "zendesk", org: Organization | None = None) -> Integration:
        integration = Integration(
            organization_id=(org or test_org).id,
            system_type=system,
            system_name=SYSTEM_DISPLAY_NAMES[system],
            config={},
            is_active=True,
        )
        db.add(integration)
        db.commit()
        return integration

    return _make


@pytest.fixture(scope="function")
def make_credential(db: Session, test_org: Organization) -> Callable[..., IntegrationCredential]:
    def _make(
        system: str = "zendesk",
        custom_config: dict | None = None,
        is_active: bool = True,
        org: Organization | None = None,
    ) -> IntegrationCredential:
        credential = IntegrationCredential(
            organization_id=(org or test_org).id,
            system_type=system,
            subdomain="acme",
            email="agent@acme.test",
            api_token="secret-token",
            custom_config=custom_config,
            is_active=is_active,
        )
        db.add(credential)
        db.commit()
        return credential

    return _make


@pytest.fixture(scope="function")
def make_record(db: Session, test_org: Organization) -> Callable[..., Record]:
    """
    Record factory.

    custom_fields may be a dict (stored as JSON) or a raw string.
    """

    def _make(integration: Integration, source_id: str, **fields) -> Record:
        custom_fields = fields.pop("custom_fields", None)
        if isinstance(custom_fields, dict):
            custom_fields = dump_json_field(custom_fields)
        labels = fields.pop("labels", None)
        if isinstance(labels, list):
            labels = dump_json_field(labels)
        record = Record(
            organization_id=integration.organization_id,
            source_integration_id=integration.id,
            source_system=integration.system_type,
            source_id=source_id,
            custom_fields=custom_fields,
            labels=labels,
            **fields,
        )
        db.add(record)
        db.commit()
        return record

    return _make


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Create an AsyncClient for testing the API against the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
