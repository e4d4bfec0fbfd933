"""
Chat room model. One two-person conversation.
"""
from enum import Enum
from typing import Optional, Tuple

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.schema.participant import Participant
from app.utils.time import utcnow


class RoomType(str, Enum):
    RANDOM = "random"
    FRIEND = "friend"


class RoomState(str, Enum):
    OPEN = "OPEN"
    TEMP_CLOSED = "TEMP_CLOSED"
    CLOSED = "CLOSED"


class ChatRoom(Base):
    __tablename__ = "chat_rooms"
    __table_args__ = (
        CheckConstraint("slot_1 <> slot_2", name="ck_chat_rooms_distinct_slots"),
        CheckConstraint(
            "(is_active AND closed_at IS NULL) OR (NOT is_active AND closed_at IS NOT NULL)",
            name="ck_chat_rooms_active_closed_at",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slot_1 = Column(ParticipantType, nullable=False, index=True)
    slot_2 = Column(ParticipantType, nullable=False, index=True)
    room_type = Column(String, nullable=False, default=RoomType.RANDOM.value)
    # Set for rooms created from a pairing; unique so a pairing owns at most one room.
    pairing_id = Column(Uuid, nullable=True, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_temporary_closure = Column(Boolean, nullable=False, default=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    closed_by = Column(ParticipantType, nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    messages = relationship("ChatMessage", back_populates="room", cascade="all, delete-orphan", foreign_keys="ChatMessage.room_id")

    @property
    def state(self) -> RoomState:
        if self.is_active:
            return RoomState.OPEN
        if self.is_temporary_closure:
            return RoomState.TEMP_CLOSED
        return RoomState.CLOSED

    @property
    def participants(self) -> Tuple[Participant, Participant]:
        return (self.slot_1, self.slot_2)

    def has_participant(self, participant: Participant) -> bool:
        return participant in (self.slot_1, self.slot_2)

    def partner_of(self, participant: Participant) -> Optional[Participant]:
        if participant == self.slot_1:
            return self.slot_2
        if participant == self.slot_2:
            return self.slot_1
        return None
