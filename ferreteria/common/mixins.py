"""
Common mixins for models
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUIDPrimaryKeyMixin:
    """Opaque, store-assigned identifier"""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, index=True)


class TimestampMixin:
    """Mixin for documents that track their last modification"""

    last_updated = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
