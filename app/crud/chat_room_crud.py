"""
Chat room CRUD. State transitions are conditional updates; the affected row count
tells the caller whether its transition won.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from app.model.chat_room import ChatRoom, RoomType
from app.crud.base import CRUDBase
from app.schema.participant import Participant


class CRUDChatRoom(CRUDBase[ChatRoom, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, room_id: uuid.UUID) -> Optional[ChatRoom]:
        return (
            db.query(self.model)
            .filter(self.model.id == room_id)
            .populate_existing()
            .first()
        )

    def get_by_pairing(self, db: Session, *, pairing_id: uuid.UUID) -> Optional[ChatRoom]:
        return (
            db.query(self.model)
            .filter(self.model.pairing_id == pairing_id)
            .populate_existing()
            .first()
        )

    def _occupied_by(self, participant: Participant):
        return or_(self.model.slot_1 == participant, self.model.slot_2 == participant)

    def _shared_by(self, a: Participant, b: Participant):
        return or_(
            and_(self.model.slot_1 == a, self.model.slot_2 == b),
            and_(self.model.slot_1 == b, self.model.slot_2 == a),
        )

    def get_active_random_for_participant(self, db: Session, *, participant: Participant) -> Optional[ChatRoom]:
        return (
            db.query(self.model)
            .filter(
                self._occupied_by(participant),
                self.model.room_type == RoomType.RANDOM.value,
                self.model.is_active.is_(True),
            )
            .order_by(self.model.created_at.desc())
            .populate_existing()
            .first()
        )

    def list_unclosed_shared(self, db: Session, *, a: Participant, b: Participant) -> List[ChatRoom]:
        """Rooms shared by a and b that are open or temporarily closed."""
        return (
            db.query(self.model)
            .filter(
                self._shared_by(a, b),
                or_(self.model.is_active.is_(True), self.model.is_temporary_closure.is_(True)),
            )
            .populate_existing()
            .all()
        )

    def close_if_active(
        self,
        db: Session,
        *,
        room_id: uuid.UUID,
        closed_by: Participant,
        temporary: bool,
        now: datetime,
    ) -> int:
        return (
            db.query(self.model)
            .filter(self.model.id == room_id, self.model.is_active.is_(True))
            .update(
                {
                    self.model.is_active: False,
                    self.model.is_temporary_closure: temporary,
                    self.model.closed_at: now,
                    self.model.closed_by: closed_by,
                },
                synchronize_session=False,
            )
        )

    def finalize_if_temp_closed(self, db: Session, *, room_id: uuid.UUID) -> int:
        """TEMP_CLOSED -> CLOSED. Keeps the original closed_at / closed_by."""
        return (
            db.query(self.model)
            .filter(
                self.model.id == room_id,
                self.model.is_active.is_(False),
                self.model.is_temporary_closure.is_(True),
            )
            .update({self.model.is_temporary_closure: False}, synchronize_session=False)
        )

    def reopen_if_temp_closed(self, db: Session, *, room_id: uuid.UUID) -> int:
        return (
            db.query(self.model)
            .filter(
                self.model.id == room_id,
                self.model.is_active.is_(False),
                self.model.is_temporary_closure.is_(True),
            )
            .update(
                {
                    self.model.is_active: True,
                    self.model.is_temporary_closure: False,
                    self.model.closed_at: None,
                    self.model.closed_by: None,
                },
                synchronize_session=False,
            )
        )


chat_room_crud = CRUDChatRoom(ChatRoom)
