"""
Saved filters CRUD.
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.saved_filters import SavedFilters
from app.schema.participant import Participant


class CRUDSavedFilters(CRUDBase[SavedFilters, Dict[str, Any], Dict[str, Any]]):
    def get_by_participant(self, db: Session, *, participant: Participant) -> Optional[SavedFilters]:
        return db.get(self.model, participant)

    def upsert(self, db: Session, *, participant: Participant, filters: Dict[str, Any]) -> SavedFilters:
        row = self.get_by_participant(db, participant=participant)
        if row is None:
            return self.create_from_dict(db, obj_in={"participant": participant, "filters": filters})
        return self.update(db, db_obj=row, obj_in={"filters": filters})


saved_filters_crud = CRUDSavedFilters(SavedFilters)
