"""
Organization Models
Tenant record with business hours and booking settings, plus document counters
"""
from sqlalchemy import Column, String, Integer, Boolean, JSON, TIMESTAMP, UniqueConstraint
from datetime import datetime
import uuid

from bizops.core.database import Base

# Document counters created with every organization
JOURNAL_ENTRY_SEQUENCE = "journal_entry"
SEEDED_SEQUENCES = (JOURNAL_ENTRY_SEQUENCE,)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def generate_id() -> str:
    return str(uuid.uuid4())


class Organization(Base):
    """Tenant. Every other row carries its id."""
    __tablename__ = "organizations"

    id = Column(String(255), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    timezone = Column(String(64), default="UTC", nullable=False)

    # {"monday": {"open": "09:00", "close": "17:00"}, "sunday": {}, ...}
    business_hours = Column(JSON, default=dict, nullable=False)

    # Booking settings
    slot_duration_minutes = Column(Integer, default=60, nullable=False)
    buffer_minutes = Column(Integer, default=15, nullable=False)
    min_advance_hours = Column(Integer, default=1, nullable=False)
    max_advance_hours = Column(Integer, default=720, nullable=False)
    cancellation_window_hours = Column(Integer, default=24, nullable=False)
    require_approval = Column(Boolean, default=False, nullable=False)
    allow_cancellation = Column(Boolean, default=True, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    def hours_for(self, weekday: int):
        """Return (open, close) strings for a weekday index (Monday=0), or None when closed"""
        day = (self.business_hours or {}).get(WEEKDAYS[weekday]) or {}
        open_at, close_at = day.get("open"), day.get("close")
        if not open_at or not close_at:
            return None
        return open_at, close_at


class DocumentSequence(Base):
    """Per-organization monotonic counter used for document numbers"""
    __tablename__ = "document_sequences"
    __table_args__ = (UniqueConstraint("organization_id", "name"),)

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    next_value = Column(Integer, default=1, nullable=False)
