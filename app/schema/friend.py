"""
Relationship schemas: friend requests, friendships, blocks, reports.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid
from pydantic import BaseModel, Field

from app.model.friend_request import FriendRequestStatus
from app.model.friendship import FriendshipStatus
from app.model.report import ReportCategory
from app.schema.participant import Participant


class FriendRequestCreateBody(BaseModel):
    """Body for POST /friends/requests."""
    receiver: Participant
    room_id: Optional[uuid.UUID] = None
    message: Optional[str] = Field(None, max_length=500)


class FriendRequestResponseKind(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendRequestRespondBody(BaseModel):
    response: FriendRequestResponseKind


class FriendRequestResponse(BaseModel):
    id: uuid.UUID
    sender: Participant
    receiver: Participant
    chat_room_id: Optional[uuid.UUID] = None
    message: Optional[str] = None
    status: FriendRequestStatus
    created_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FriendRequestCount(BaseModel):
    count: int


class FriendResponse(BaseModel):
    """A friendship seen from one side."""
    friendship_id: uuid.UUID
    friend: Participant
    status: FriendshipStatus
    chat_room_id: Optional[uuid.UUID] = None
    created_at: datetime
    accepted_at: Optional[datetime] = None


class FriendListResponse(BaseModel):
    items: List[FriendResponse]


class RespondResult(BaseModel):
    request: FriendRequestResponse
    friendship_id: Optional[uuid.UUID] = None
    chat_room_id: Optional[uuid.UUID] = None


class FriendshipStatusResponse(BaseModel):
    """Relationship between the caller and another participant."""
    friendship_id: Optional[uuid.UUID] = None
    friendship_status: Optional[FriendshipStatus] = None
    pending_request_id: Optional[uuid.UUID] = None
    pending_direction: Optional[str] = Field(None, description="'sent' or 'received'.")
    blocked: bool = False


class BlockCreateBody(BaseModel):
    blocked: Participant
    reason: Optional[str] = Field(None, max_length=1000)


class BlockResponse(BaseModel):
    id: uuid.UUID
    blocker: Participant
    blocked: Participant
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReportCreateBody(BaseModel):
    reported: Participant
    category: ReportCategory = ReportCategory.OTHER
    reason: Optional[str] = Field(None, max_length=2000)
    room_id: Optional[uuid.UUID] = None


class ReportResponse(BaseModel):
    id: uuid.UUID
    reporter: Participant
    reported: Participant
    category: ReportCategory
    reason: Optional[str] = None
    chat_room_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AckResponse(BaseModel):
    """Plain acknowledgement."""
    message: str
