"""
Queue API: enter, leave, heartbeat, position probe and saved filters.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import validate_session
from app.schema.matching import (
    MatchFilters,
    QueueEnterBody,
    QueueEntryResponse,
    QueueHeartbeatResponse,
    QueueLeaveResponse,
    QueuePosition,
)
from app.schema.participant import Participant
from app.service.matching_service import MatchingService

router = APIRouter()


@router.post("", response_model=QueueEntryResponse, status_code=status.HTTP_201_CREATED)
async def enter_queue(
    body: QueueEnterBody,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """
    Enter (or re-enter) the matching queue.
    Without filters in the body, the participant's saved filters are used.
    Fails with ALREADY_IN_ROOM while the participant is in an active random chat.
    """
    service = MatchingService(db)
    filters = body.filters
    if filters is None:
        filters = service.get_saved_filters(participant)
    entry = service.enter_queue(
        participant,
        filters=filters,
        profile=body.profile,
        connection_hint=body.connection_hint,
    )
    return QueueEntryResponse.model_validate(entry)


@router.delete("", response_model=QueueLeaveResponse)
async def leave_queue(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Leave the queue. Safe to call when not queued (page unload cleanup)."""
    removed = MatchingService(db).leave_queue(participant)
    return QueueLeaveResponse(removed=removed)


@router.get("/position", response_model=Optional[QueuePosition])
async def queue_position(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Position in the queue, or null when not queued."""
    return MatchingService(db).queue_position(participant)


@router.post("/heartbeat", response_model=QueueHeartbeatResponse)
async def queue_heartbeat(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Keep the queue entry alive while the client waits."""
    return QueueHeartbeatResponse(queued=MatchingService(db).heartbeat(participant))


@router.get("/filters", response_model=Optional[MatchFilters])
async def get_filters(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Saved match filters, or null."""
    return MatchingService(db).get_saved_filters(participant)


@router.put("/filters", response_model=MatchFilters)
async def save_filters(
    filters: MatchFilters,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Remember match filters for later searches."""
    return MatchingService(db).save_filters(participant, filters)
