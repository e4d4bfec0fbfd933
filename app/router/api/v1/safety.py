"""
Safety API: block and report.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import validate_session
from app.schema.friend import BlockCreateBody, BlockResponse, ReportCreateBody, ReportResponse
from app.schema.participant import Participant
from app.service.friend_service import FriendService

router = APIRouter()


@router.post("/blocks", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
async def block(
    body: BlockCreateBody,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Block a participant: ends friendship, closes shared rooms, prevents future matches."""
    result = FriendService(db).block(participant, body.blocked, reason=body.reason)
    return BlockResponse.model_validate(result)


@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def report(
    body: ReportCreateBody,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """File a report for review."""
    result = FriendService(db).report(
        participant, body.reported, category=body.category, reason=body.reason, room_id=body.room_id
    )
    return ReportResponse.model_validate(result)
