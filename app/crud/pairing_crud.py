"""
Pairing CRUD.
"""
from datetime import datetime
from typing import Any, Dict, Optional, Set
import uuid

from sqlalchemy import and_, exists, or_
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.block import Block
from app.model.chat_room import ChatRoom
from app.model.pairing import Pairing
from app.schema.participant import Participant


class CRUDPairing(CRUDBase[Pairing, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, pairing_id: uuid.UUID) -> Optional[Pairing]:
        return (
            db.query(self.model)
            .filter(self.model.id == pairing_id)
            .populate_existing()
            .first()
        )

    def _involving(self, participant: Participant):
        return or_(self.model.participant_a == participant, self.model.participant_b == participant)

    def _blocked_pair(self):
        return exists().where(
            or_(
                and_(Block.blocker == self.model.participant_a, Block.blocked == self.model.participant_b),
                and_(Block.blocker == self.model.participant_b, Block.blocked == self.model.participant_a),
            )
        )

    def get_live_for_participant(
        self, db: Session, *, participant: Participant, roomless_since: datetime
    ) -> Optional[Pairing]:
        """
        Latest pairing that is still in play for the participant:
        its room is open, or it has no room yet and was created after `roomless_since`.
        A block between the pair retires the pairing.
        """
        return (
            db.query(self.model)
            .outerjoin(ChatRoom, ChatRoom.id == self.model.room_id)
            .filter(
                self._involving(participant),
                or_(
                    ChatRoom.is_active.is_(True),
                    and_(self.model.room_id.is_(None), self.model.created_at >= roomless_since),
                ),
                ~self._blocked_pair(),
            )
            .order_by(self.model.created_at.desc())
            .populate_existing()
            .first()
        )

    def set_room_if_unset(self, db: Session, *, pairing_id: uuid.UUID, room_id: uuid.UUID) -> int:
        """Back-fill room_id once. Returns 1 if this call set it."""
        return (
            db.query(self.model)
            .filter(self.model.id == pairing_id, self.model.room_id.is_(None))
            .update({self.model.room_id: room_id}, synchronize_session=False)
        )

    def recent_partners(self, db: Session, *, participant: Participant, since: datetime) -> Set[Participant]:
        rows = (
            db.query(self.model.participant_a, self.model.participant_b)
            .filter(self._involving(participant), self.model.created_at >= since)
            .all()
        )
        partners = set()
        for a, b in rows:
            partners.add(b if a == participant else a)
        return partners


pairing_crud = CRUDPairing(Pairing)
