"""
Report model. Recorded for review; no effect on rooms.
"""
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.utils.time import utcnow


class ReportCategory(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    FAKE_PROFILE = "fake_profile"
    OTHER = "other"


class Report(Base):
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reporter = Column(ParticipantType, nullable=False, index=True)
    reported = Column(ParticipantType, nullable=False, index=True)
    category = Column(String, nullable=False, default=ReportCategory.OTHER.value)
    reason = Column(Text, nullable=True)
    chat_room_id = Column(Uuid, ForeignKey("chat_rooms.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
