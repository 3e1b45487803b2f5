from sqlalchemy import Column, String, Text, DateTime
from secassess.db import Base
from datetime import datetime, UTC

class StorageEntry(Base):
    """One JSON blob of the local key-value store."""
    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    # Serialized JSON text; parsing happens in SafeStorage so corrupt rows degrade to defaults
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))
