"""
Block model. One-directional; either direction prevents pairing.
"""
from sqlalchemy import Column, Text, DateTime, UniqueConstraint, Uuid
import uuid

from app.core.database import Base
from app.model.types import ParticipantType
from app.utils.time import utcnow


class Block(Base):
    __tablename__ = "blocks"
    __table_args__ = (UniqueConstraint("blocker", "blocked", name="uq_blocks_blocker_blocked"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    blocker = Column(ParticipantType, nullable=False, index=True)
    blocked = Column(ParticipantType, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
