"""
Chat message model. One message in a room.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.utils.time import utcnow


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (UniqueConstraint("room_id", "seq", name="uq_chat_messages_room_seq"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id = Column(Uuid, ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    sender = Column(ParticipantType, nullable=False, index=True)
    content = Column(Text, nullable=False)
    reply_to_id = Column(Uuid, ForeignKey("chat_messages.id", ondelete="SET NULL"), nullable=True, index=True)
    # Per-room commit order, assigned while the room row is locked.
    seq = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    room = relationship("ChatRoom", back_populates="messages", foreign_keys=[room_id])
    reply_to = relationship("ChatMessage", remote_side="ChatMessage.id")
