"""
Friends API: friend requests, friend list, friendship status and unfriend.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import validate_session
from app.schema.friend import (
    AckResponse,
    FriendListResponse,
    FriendRequestCount,
    FriendRequestCreateBody,
    FriendRequestRespondBody,
    FriendRequestResponse,
    FriendshipStatusResponse,
    RespondResult,
)
from app.schema.participant import Participant, ParticipantKind
from app.service.friend_service import FriendService

router = APIRouter()


@router.post("/requests", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    body: FriendRequestCreateBody,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Send a friend request, optionally from a shared room."""
    req = FriendService(db).send_friend_request(
        participant, body.receiver, room_id=body.room_id, message=body.message
    )
    return FriendRequestResponse.model_validate(req)


@router.get("/requests/pending", response_model=List[FriendRequestResponse])
async def pending_requests(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Requests waiting for the caller's answer."""
    return [FriendRequestResponse.model_validate(r) for r in FriendService(db).list_pending_requests(participant)]


@router.get("/requests/sent", response_model=List[FriendRequestResponse])
async def sent_requests(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Unanswered requests the caller sent."""
    return [FriendRequestResponse.model_validate(r) for r in FriendService(db).list_sent_requests(participant)]


@router.get("/requests/count", response_model=FriendRequestCount)
async def pending_request_count(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    return FriendRequestCount(count=FriendService(db).count_pending_requests(participant))


@router.post("/requests/{request_id}/respond", response_model=RespondResult)
async def respond_to_request(
    request_id: uuid.UUID,
    body: FriendRequestRespondBody,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Accept or reject. Only the addressed receiver may answer."""
    req, friendship = FriendService(db).respond_to_request(request_id, body.response, participant)
    return RespondResult(
        request=FriendRequestResponse.model_validate(req),
        friendship_id=friendship.id if friendship else None,
        chat_room_id=friendship.chat_room_id if friendship else None,
    )


@router.get("", response_model=FriendListResponse)
async def list_friends(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
    include_unfriended: bool = Query(False, description="Also list ended friendships (read-only rooms)."),
):
    items = FriendService(db).list_friends(participant, include_unfriended=include_unfriended)
    return FriendListResponse(items=items)


@router.get("/status/{kind}/{participant_id}", response_model=FriendshipStatusResponse)
async def friendship_status(
    kind: ParticipantKind,
    participant_id: str,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Friendship, pending request and block state between the caller and another participant."""
    other = Participant(kind=kind, id=participant_id)
    return FriendService(db).get_friendship_status(participant, other)


@router.post("/{friendship_id}/unfriend", response_model=AckResponse)
async def unfriend(
    friendship_id: uuid.UUID,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """End a friendship. The friend room becomes read-only until you are friends again."""
    FriendService(db).unfriend(friendship_id, participant)
    return AckResponse(message="Unfriended. The chat room is temporarily closed.")
