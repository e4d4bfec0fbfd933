"""
Chat schemas: rooms and messages.
"""
from datetime import datetime
from typing import List, Optional
import uuid
from pydantic import BaseModel, Field

from app.model.chat_room import RoomState, RoomType
from app.schema.participant import Participant


# --- Room ---


class RoomResponse(BaseModel):
    """Single room."""
    id: uuid.UUID
    slot_1: Participant
    slot_2: Participant
    room_type: RoomType
    state: RoomState
    pairing_id: Optional[uuid.UUID] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime
    closed_at: Optional[datetime] = None
    closed_by: Optional[Participant] = None

    class Config:
        from_attributes = True


class RoomStateResponse(BaseModel):
    room_id: uuid.UUID
    state: RoomState


class RoomCloseBody(BaseModel):
    """Body for POST /rooms/{room_id}/close."""
    temporary: bool = False


# --- Message ---

class MessageCreateBody(BaseModel):
    """Body for POST /rooms/{room_id}/messages."""
    content: str = Field(..., min_length=1, max_length=10_000)
    reply_to_id: Optional[uuid.UUID] = None


class MessageResponse(BaseModel):
    """Single message."""
    id: uuid.UUID
    room_id: uuid.UUID
    sender: Participant
    content: str
    reply_to_id: Optional[uuid.UUID] = None
    seq: int
    created_at: datetime

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    """Messages for a room, oldest first."""
    items: List[MessageResponse]
    room_state: RoomState
    has_more: bool = Field(..., description="True when older messages exist before the first item.")
