"""
Friendship model. One row per unordered participant pair.
"""
from enum import Enum
from typing import Optional

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.schema.participant import Participant
from app.utils.time import utcnow


class FriendshipStatus(str, Enum):
    ACTIVE = "active"
    UNFRIENDED = "unfriended"


class Friendship(Base):
    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("participant_low", "participant_high", name="uq_friendships_pair"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Canonical ordering: participant_low.key < participant_high.key
    participant_low = Column(ParticipantType, nullable=False, index=True)
    participant_high = Column(ParticipantType, nullable=False, index=True)
    status = Column(String, nullable=False, default=FriendshipStatus.ACTIVE.value)
    chat_room_id = Column(Uuid, ForeignKey("chat_rooms.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    unfriended_at = Column(DateTime(timezone=True), nullable=True)

    chat_room = relationship("ChatRoom", foreign_keys=[chat_room_id])

    @property
    def is_active(self) -> bool:
        return self.status == FriendshipStatus.ACTIVE.value

    def involves(self, participant: Participant) -> bool:
        return participant in (self.participant_low, self.participant_high)

    def friend_of(self, participant: Participant) -> Optional[Participant]:
        if participant == self.participant_low:
            return self.participant_high
        if participant == self.participant_high:
            return self.participant_low
        return None
