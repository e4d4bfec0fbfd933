"""
Pairing model. Two participants matched by the resolver, before or after their room exists.
"""
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.schema.participant import Participant
from app.utils.time import utcnow


class Pairing(Base):
    __tablename__ = "pairings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_a = Column(ParticipantType, nullable=False, index=True)
    participant_b = Column(ParticipantType, nullable=False, index=True)
    room_id = Column(Uuid, ForeignKey("chat_rooms.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    room = relationship("ChatRoom", foreign_keys=[room_id])

    def involves(self, participant: Participant) -> bool:
        return participant in (self.participant_a, self.participant_b)

    def partner_of(self, participant: Participant) -> Optional[Participant]:
        if participant == self.participant_a:
            return self.participant_b
        if participant == self.participant_b:
            return self.participant_a
        return None
