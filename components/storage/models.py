"""Collection snapshot model for the database."""

from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime

from components.core.database import Base


class CollectionSnapshot(Base):
    """A named collection of records stored as one JSON array."""
    __tablename__ = "collections"

    name = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
