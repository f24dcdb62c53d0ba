"""
Storage Entry Model
SQLAlchemy model backing the flat key-value store.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime

from legallens.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """A single JSON-serialized value stored under a fixed key."""
    __tablename__ = 'storage_entries'

    key = Column(String(400), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f'<StorageEntry {self.key}>'
