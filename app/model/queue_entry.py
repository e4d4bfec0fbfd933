"""
Queue entry model. A participant waiting to be matched.
"""
from sqlalchemy import Column, String, DateTime, JSON, Uuid
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.utils.time import utcnow


class QueueEntry(Base):
    __tablename__ = "queue_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    participant = Column(ParticipantType, nullable=False, unique=True)
    filters = Column(JSON, nullable=False, default=dict)  # what this participant is looking for
    profile = Column(JSON, nullable=False, default=dict)  # traits other filters are checked against
    connection_hint = Column(String, nullable=True)
    enqueued_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    last_seen_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
