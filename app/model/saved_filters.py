"""
Saved match filters, remembered between searches.
"""
from sqlalchemy import Column, DateTime, JSON

from app.core.database import Base
from app.model.types import ParticipantType
from app.utils.time import utcnow


class SavedFilters(Base):
    __tablename__ = "saved_filters"

    participant = Column(ParticipantType, primary_key=True)
    filters = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
