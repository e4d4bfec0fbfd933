"""
Friend request model.
"""
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.utils.time import utcnow


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender = Column(ParticipantType, nullable=False, index=True)
    receiver = Column(ParticipantType, nullable=False, index=True)
    chat_room_id = Column(Uuid, ForeignKey("chat_rooms.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=FriendRequestStatus.PENDING.value, index=True)
    # Canonical pair key while pending, NULL once answered; unique so a pair has one open request.
    pending_key = Column(String(170), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    responded_at = Column(DateTime(timezone=True), nullable=True)
