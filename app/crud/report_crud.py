"""
Report CRUD.
"""
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.report import Report
from app.schema.participant import Participant


class CRUDReport(CRUDBase[Report, Dict[str, Any], Dict[str, Any]]):
    def list_by_reported(self, db: Session, *, reported: Participant) -> List[Report]:
        return (
            db.query(self.model)
            .filter(self.model.reported == reported)
            .order_by(self.model.created_at.desc())
            .all()
        )


report_crud = CRUDReport(Report)
