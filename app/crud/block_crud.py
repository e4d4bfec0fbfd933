"""
Block CRUD.
"""
from typing import Any, Dict, Optional, Set

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.block import Block
from app.schema.participant import Participant


class CRUDBlock(CRUDBase[Block, Dict[str, Any], Dict[str, Any]]):
    def get_by_pair(self, db: Session, *, blocker: Participant, blocked: Participant) -> Optional[Block]:
        return (
            db.query(self.model)
            .filter(self.model.blocker == blocker, self.model.blocked == blocked)
            .first()
        )

    def exists_between(self, db: Session, *, a: Participant, b: Participant) -> bool:
        """True if either participant has blocked the other."""
        return (
            db.query(self.model.id)
            .filter(
                or_(
                    and_(self.model.blocker == a, self.model.blocked == b),
                    and_(self.model.blocker == b, self.model.blocked == a),
                )
            )
            .first()
            is not None
        )

    def blocked_counterparts(self, db: Session, *, participant: Participant) -> Set[Participant]:
        """Everyone the participant blocked or was blocked by."""
        rows = (
            db.query(self.model.blocker, self.model.blocked)
            .filter(or_(self.model.blocker == participant, self.model.blocked == participant))
            .all()
        )
        return {blocked if blocker == participant else blocker for blocker, blocked in rows}


block_crud = CRUDBlock(Block)
