"""
대리상 월별 실적 리포지토리

(대리상, 월) 당 한 행. 집계 컬럼은 원자적 증분(col = col + :delta)으로만 바꾼다.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ledgerapi.models.agent import AgentMonthlyRecord, RecordStatus
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.agent import MonthlyRecordSchema


class AgentRecordRepository(BaseRepository[AgentMonthlyRecord, MonthlyRecordSchema]):
    def __init__(self, db: Session):
        super().__init__(AgentMonthlyRecord, MonthlyRecordSchema, db)

    def find(self, user_id: int, month: str) -> Optional[MonthlyRecordSchema]:
        instance = (
            self.db.query(self.model_class)
            .populate_existing()
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.month == month,
            )
            .first()
        )
        return self._to_schema(instance)

    def get_or_create(
        self, user_id: int, month: str, level_id: int, agent_name: str = ""
    ) -> MonthlyRecordSchema:
        existing = self.find(user_id, month)
        if existing:
            return existing

        self._insert_ignore(
            {
                "user_id": user_id,
                "month": month,
                "level_id": level_id,
                "agent_name": agent_name or "",
                "recruit_count": 0,
                "total_sales": 0,
                "commission_amount": 0,
                "bonus_amount": 0,
                "total_earnings": 0,
                "status": RecordStatus.PENDING.value,
                "note": "",
            },
            conflict_columns=["user_id", "month"],
        )
        return self.find(user_id, month)

    def increment(
        self,
        user_id: int,
        month: str,
        sales: int = 0,
        commission: int = 0,
        bonus: int = 0,
        recruits: int = 0,
    ) -> MonthlyRecordSchema:
        """행이 이미 존재해야 한다 (get_or_create 선행)"""
        model = self.model_class
        (
            self.db.query(model)
            .filter(model.user_id == user_id, model.month == month)
            .update(
                {
                    model.total_sales: model.total_sales + sales,
                    model.commission_amount: model.commission_amount + commission,
                    model.bonus_amount: model.bonus_amount + bonus,
                    model.total_earnings: model.total_earnings + commission + bonus,
                    model.recruit_count: model.recruit_count + recruits,
                    model.updated_at: datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        return self.find(user_id, month)

    def mark_settled(self, record_id: int, note: Optional[str] = None) -> int:
        values = {
            self.model_class.status: RecordStatus.SETTLED.value,
            self.model_class.updated_at: datetime.now(timezone.utc),
        }
        if note is not None:
            values[self.model_class.note] = note
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == record_id,
                self.model_class.status == RecordStatus.PENDING.value,
            )
            .update(values, synchronize_session=False)
        )

    def list_records(
        self,
        user_id: Optional[int] = None,
        month: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[MonthlyRecordSchema]:
        query = self.db.query(self.model_class)
        if user_id is not None:
            query = query.filter(self.model_class.user_id == user_id)
        if month:
            query = query.filter(self.model_class.month == month)
        if status:
            query = query.filter(self.model_class.status == status)
        records = (
            query.order_by(desc(self.model_class.month), self.model_class.user_id)
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_schemas(records)
