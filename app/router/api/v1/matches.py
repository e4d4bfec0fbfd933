"""
Matches API: resolver polling, long-poll wait and room creation for a pairing.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import validate_session
from app.model.pairing import Pairing
from app.schema.chat import RoomResponse
from app.schema.matching import MatchResult, PairingResponse
from app.schema.participant import Participant
from app.service.matching_service import MatchingService
from app.service.room_service import RoomService

router = APIRouter()

MAX_WAIT_SECONDS = 30


def _to_result(pairing: Optional[Pairing], participant: Participant) -> MatchResult:
    if not pairing:
        return MatchResult(matched=False)
    return MatchResult(
        matched=True,
        pairing=PairingResponse.model_validate(pairing),
        partner=pairing.partner_of(participant),
    )


@router.post("/attempt", response_model=MatchResult)
async def attempt_match(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """
    Try to pair the caller now. Returns matched=false while still waiting.
    A participant who was already paired gets the same pairing back.
    """
    pairing = MatchingService(db).attempt_match(participant)
    return _to_result(pairing, participant)


@router.post("/wait", response_model=MatchResult)
async def wait_for_match(
    timeout: float = Query(10, ge=0, le=MAX_WAIT_SECONDS, description="Seconds to wait before answering."),
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Long-poll: answers as soon as a match is pushed or found by polling, or after `timeout`."""
    pairing = await MatchingService(db).await_match(participant, timeout)
    return _to_result(pairing, participant)


@router.get("/active", response_model=MatchResult)
async def active_match(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """The caller's current pairing (room open or not yet created), if any."""
    pairing = MatchingService(db).get_active_match(participant)
    return _to_result(pairing, participant)


@router.post("/{pairing_id}/room", response_model=RoomResponse)
async def create_room_for_pairing(
    pairing_id: uuid.UUID,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Create the room for a pairing, or return it if the partner already did."""
    room = RoomService(db).create_room_for_pairing(pairing_id, participant)
    return RoomResponse.model_validate(room)
