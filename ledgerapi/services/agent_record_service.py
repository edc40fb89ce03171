"""
대리상 월별 실적 서비스

실적 행은 (대리상, 월) 단위로 지연 생성되고 원자적 증분으로만 변경된다.
월 구분은 운영 타임존 기준 (utils.timezone_utils.get_current_month).
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import InvalidAgentStatusError, NotFoundError
from ledgerapi.database.session import unit_of_work
from ledgerapi.repositories.agent_record_repository import AgentRecordRepository
from ledgerapi.schemas.agent import AgentProfileSchema, MonthlyRecordSchema
from ledgerapi.utils.timezone_utils import get_current_month

logger = logging.getLogger(__name__)


class AgentRecordService:
    def __init__(self, db: Session):
        self.db = db
        self.record_repo = AgentRecordRepository(db)

    def _ensure(self, profile: AgentProfileSchema, month: str) -> MonthlyRecordSchema:
        return self.record_repo.get_or_create(
            profile.user_id, month, profile.level_id, profile.real_name
        )

    def add_sale(
        self,
        profile: AgentProfileSchema,
        order_amount: int,
        commission: int,
        month: Optional[str] = None,
    ) -> MonthlyRecordSchema:
        """주문 1건의 실적/수수료 반영 (호출자 트랜잭션 안에서)"""
        month = month or get_current_month()
        self._ensure(profile, month)
        return self.record_repo.increment(
            profile.user_id, month, sales=order_amount, commission=commission
        )

    def add_recruit(
        self, profile: AgentProfileSchema, month: Optional[str] = None
    ) -> MonthlyRecordSchema:
        month = month or get_current_month()
        self._ensure(profile, month)
        return self.record_repo.increment(profile.user_id, month, recruits=1)

    def get_month_sales(self, user_id: int, month: Optional[str] = None) -> int:
        record = self.record_repo.find(user_id, month or get_current_month())
        return record.total_sales if record else 0

    def get_record(self, user_id: int, month: Optional[str] = None) -> Optional[MonthlyRecordSchema]:
        return self.record_repo.find(user_id, month or get_current_month())

    def list_records(
        self,
        user_id: Optional[int] = None,
        month: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[MonthlyRecordSchema]:
        return self.record_repo.list_records(user_id, month, status, limit, offset)

    def settle_record(self, record_id: int, note: Optional[str] = None) -> MonthlyRecordSchema:
        """월 실적을 정산 완료로 표시 (pending 에서만)"""
        with unit_of_work(self.db):
            record = self.record_repo.get_by_id(record_id)
            if not record:
                raise NotFoundError("Agent monthly record", details={"record_id": record_id})
            if self.record_repo.mark_settled(record_id, note) != 1:
                raise InvalidAgentStatusError(
                    "Monthly record is already settled",
                    details={"record_id": record_id},
                )
            settled = self.record_repo.find(record.user_id, record.month)

        logger.info(f"Settled agent record {record_id} ({record.user_id} / {record.month})")
        return settled
