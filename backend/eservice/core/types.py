"""Custom SQLAlchemy column types and id/time helpers shared by the models"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import TypeDecorator, String


def generate_uuid() -> str:
    """Generate a UUID string"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    """UUID stored as VARCHAR(36) so SQLite and PostgreSQL behave the same"""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        # Malformed ids are passed through so lookups simply miss
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to the naive UTC form stored in the database"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
