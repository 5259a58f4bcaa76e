"""ORM models."""

from flowlink.db.models.integrations import Integration, IntegrationCredential, SyncLog
from flowlink.db.models.organizations import Organization
from flowlink.db.models.records import CustomColumn, FieldMapping, Record, RecordLink

__all__ = [
    "CustomColumn",
    "FieldMapping",
    "Integration",
    "IntegrationCredential",
    "Organization",
    "Record",
    "RecordLink",
    "SyncLog",
]
