"""
Calendar Document Model

Keyed JSON documents backing the document store.
Two collections live here:
- bookings: one row per DateKey, payload {rooms: [...], timestamp}
- monthAvailability: one row per yyyy-MM, payload {isOpen, updatedAt}
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON, Index, UniqueConstraint
from ..database import Base


class CalendarDocument(Base):
    """
    One document in one collection.

    version starts at 1 on insert and is bumped on every write;
    conditional writes compare against it.
    """
    __tablename__ = "calendar_documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    collection = Column(String(50), nullable=False)
    doc_key = Column(String(50), nullable=False)

    payload = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('collection', 'doc_key', name='uq_calendar_document_key'),
        Index('ix_calendar_document_collection', 'collection', 'doc_key'),
    )

    def __repr__(self):
        return f"<CalendarDocument {self.collection}/{self.doc_key} v{self.version}>"
