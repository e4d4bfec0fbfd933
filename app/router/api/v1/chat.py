"""
Chat API: rooms and messages (REST). WebSocket in same module.
"""
import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status, WebSocket
from sqlalchemy.orm import Session

from app.chat.connection_manager import connection_manager, participant_channel, room_channel
from app.core.database import get_db, SessionLocal
from app.core.dependencies import validate_session
from app.crud import chat_room_crud
from app.schema.chat import (
    MessageCreateBody,
    MessageListResponse,
    MessageResponse,
    RoomCloseBody,
    RoomResponse,
    RoomStateResponse,
)
from app.schema.participant import Participant
from app.service.message_service import MessageService
from app.service.room_service import RoomService
from app.session import get_session, participant_from_session

router = APIRouter()
logger = logging.getLogger(__name__)


# --- REST: Rooms ---

@router.get("/rooms/active", response_model=Optional[RoomResponse])
async def get_active_room(
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """The caller's open random room, or null."""
    room = RoomService(db).get_active_room(participant)
    return RoomResponse.model_validate(room) if room else None


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: uuid.UUID,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Get one room (only if the caller occupies it)."""
    room = RoomService(db).get_room(room_id, participant)
    return RoomResponse.model_validate(room)


@router.get("/rooms/{room_id}/state", response_model=RoomStateResponse)
async def get_room_state(
    room_id: uuid.UUID,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """OPEN, TEMP_CLOSED or CLOSED, read from the store."""
    state = RoomService(db).get_room_state(room_id, participant)
    return RoomStateResponse(room_id=room_id, state=state)


@router.post("/rooms/{room_id}/close", response_model=RoomResponse)
async def close_room(
    room_id: uuid.UUID,
    body: Optional[RoomCloseBody] = None,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """
    Leave / skip: close the room. Closing an already closed room succeeds and
    returns the room as closed by whoever closed it first.
    """
    temporary = body.temporary if body else False
    room = RoomService(db).close_room(room_id, participant, temporary=temporary)
    return RoomResponse.model_validate(room)


# --- REST: Messages ---

@router.get("/rooms/{room_id}/messages", response_model=MessageListResponse)
async def list_messages(
    room_id: uuid.UUID,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
    before_seq: Optional[int] = Query(None, ge=1, description="Return messages older than this sequence number."),
    limit: int = Query(50, ge=1, le=100),
):
    """Message history, oldest first. Readable in every room state."""
    room, items, has_more = MessageService(db).list_messages(
        room_id, participant, before_seq=before_seq, limit=limit
    )
    return MessageListResponse(
        items=[MessageResponse.model_validate(m) for m in items],
        room_state=room.state,
        has_more=has_more,
    )


@router.post("/rooms/{room_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    room_id: uuid.UUID,
    body: MessageCreateBody,
    participant: Participant = Depends(validate_session),
    db: Session = Depends(get_db),
):
    """Send a message. Fails with ROOM_CLOSED unless the room is open at commit time."""
    msg = MessageService(db).send_message(room_id, participant, body.content, reply_to_id=body.reply_to_id)
    return MessageResponse.model_validate(msg)


# --- WebSocket ---

@router.websocket("/ws")
async def websocket_chat(
    websocket: WebSocket,
    token: Optional[str] = None,
):
    """
    WebSocket for real-time events. Auth via query ?token=.
    The caller's own channel (match_found, friend requests, room state) is subscribed
    automatically; rooms are subscribed with {"action": "subscribe", "room_id": ...}.
    """
    await websocket.accept()
    participant = None
    if token:
        participant = participant_from_session(get_session(token))
    if not participant:
        await websocket.close(code=4001)
        return

    async def send_error(code: str, message: str) -> None:
        try:
            await websocket.send_text(
                json.dumps({"event": "error", "code": code, "message": message})
            )
        except Exception as e:
            logger.debug("Error frame not delivered: %s", e)

    own_channel = participant_channel(participant)
    await connection_manager.subscribe(websocket, own_channel)
    subscribed: set = {own_channel}
    try:
        while True:
            data = await websocket.receive_text()
            try:
                obj = json.loads(data)
            except json.JSONDecodeError:
                await send_error("INVALID_JSON", "Request body must be valid JSON.")
                continue
            action = obj.get("action")
            room_id_str = obj.get("room_id")
            if not room_id_str:
                await send_error("MISSING_ROOM_ID", "Missing required field: room_id.")
                continue
            try:
                room_id = uuid.UUID(room_id_str)
            except (ValueError, TypeError):
                await send_error("INVALID_ROOM_ID", "room_id must be a valid UUID.")
                continue
            db = SessionLocal()
            try:
                room = chat_room_crud.get_by_id(db, room_id=room_id)
                is_occupant = bool(room and room.has_participant(participant))
            finally:
                db.close()
            if not is_occupant:
                await send_error("UNAUTHORIZED", "You are not a participant of this room.")
                continue
            channel = room_channel(room_id)
            if action == "subscribe":
                await connection_manager.subscribe(websocket, channel)
                subscribed.add(channel)
            elif action == "unsubscribe":
                await connection_manager.unsubscribe(websocket, channel)
                subscribed.discard(channel)
            elif action == "typing":
                typing = obj.get("typing", False)
                await connection_manager.broadcast(
                    channel,
                    "user_typing",
                    {"participant": participant.key, "typing": typing},
                    exclude_websocket=websocket,
                )
            else:
                await send_error(
                    "UNKNOWN_ACTION",
                    "Expected action: subscribe, unsubscribe, or typing.",
                )
    except Exception as e:
        logger.warning("WebSocket closed: %s", e)
    finally:
        await connection_manager.unsubscribe_all(websocket, subscribed)
