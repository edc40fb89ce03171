from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ledgerapi.models.agent import SettlementRecord
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.agent import SettlementRecordSchema


class SettlementRepository(BaseRepository[SettlementRecord, SettlementRecordSchema]):
    def __init__(self, db: Session):
        super().__init__(SettlementRecord, SettlementRecordSchema, db)

    def list_records(
        self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> List[SettlementRecordSchema]:
        query = self.db.query(self.model_class)
        if user_id is not None:
            query = query.filter(self.model_class.user_id == user_id)
        records = query.order_by(desc(self.model_class.id)).offset(offset).limit(limit).all()
        return self._to_schemas(records)
