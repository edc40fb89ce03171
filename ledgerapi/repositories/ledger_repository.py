"""
원장 리포지토리 - 추가 전용

append 외의 쓰기 메서드는 두지 않는다. 상속받은 update 는 ImmutableLedgerError 로 막는다.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import ImmutableLedgerError
from ledgerapi.models.ledger import LedgerEntry
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.ledger import LedgerEntrySchema


class LedgerRepository(BaseRepository[LedgerEntry, LedgerEntrySchema]):
    def __init__(self, db: Session):
        super().__init__(LedgerEntry, LedgerEntrySchema, db)

    def append(
        self,
        user_id: int,
        book: str,
        type: str,
        amount: int,
        balance_after: int,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> LedgerEntrySchema:
        """원장 항목 추가 (호출자의 트랜잭션 안에서 flush 만 수행)"""
        return self.create(
            user_id=user_id,
            book=book,
            type=type,
            amount=amount,
            balance_after=balance_after,
            description=description or "",
            extra=dict(metadata or {}),
        )

    def update(self, instance_id: Any, commit: bool = False, **kwargs) -> None:
        """원장 항목은 수정할 수 없다 - 정정은 상쇄 항목(adjust)으로"""
        raise ImmutableLedgerError(details={"entry_id": instance_id})

    def _user_query(self, user_id: int, book: str):
        return self.db.query(self.model_class).filter(
            self.model_class.user_id == user_id,
            self.model_class.book == book,
        )

    def list_entries(
        self,
        user_id: int,
        book: str,
        limit: int = 50,
        offset: int = 0,
        type: Optional[str] = None,
    ) -> List[LedgerEntrySchema]:
        """최신순 원장 조회"""
        query = self._user_query(user_id, book)
        if type:
            query = query.filter(self.model_class.type == type)
        entries = (
            query.order_by(desc(self.model_class.id)).offset(offset).limit(limit).all()
        )
        return self._to_schemas(entries)

    def count_entries(self, user_id: int, book: str, type: Optional[str] = None) -> int:
        query = self._user_query(user_id, book)
        if type:
            query = query.filter(self.model_class.type == type)
        return query.count()

    def latest(self, user_id: int, book: str) -> Optional[LedgerEntrySchema]:
        entry = self._user_query(user_id, book).order_by(desc(self.model_class.id)).first()
        return self._to_schema(entry)

    def sum_amounts(self, user_id: int, book: str, type: Optional[str] = None) -> int:
        """계정의 원장 변동량 합계 - 유형 지정이 없으면 잔액 저장소와 일치해야 한다"""
        query = self.db.query(func.coalesce(func.sum(self.model_class.amount), 0)).filter(
            self.model_class.user_id == user_id,
            self.model_class.book == book,
        )
        if type:
            query = query.filter(self.model_class.type == type)
        total = query.scalar()
        return int(total or 0)

    def total_amount(self, book: str) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(self.model_class.amount), 0))
            .filter(self.model_class.book == book)
            .scalar()
        )
        return int(total or 0)

    def count_all(self, book: Optional[str] = None) -> int:
        query = self.db.query(self.model_class)
        if book:
            query = query.filter(self.model_class.book == book)
        return query.count()
