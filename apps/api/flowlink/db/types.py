"""Custom SQLAlchemy types for encrypted fields."""

from __future__ import annotations

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator, Text

from flowlink.core.encryption import decrypt_token, encrypt_token


class EncryptedString(TypeDecorator):
    """Encrypt/decrypt string values transparently."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, str):
            value = str(value)
        if value == "":
            return ""
        return encrypt_token(value)

    def process_result_value(self, value, dialect):
        if value is None or value == "":
            return value
        return decrypt_token(value)


# JSON document column: JSONB on PostgreSQL, plain JSON elsewhere.
JsonDocument = JSON().with_variant(JSONB(), "postgresql")
