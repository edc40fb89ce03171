"""
잔액 저장소 리포지토리

(계정, 장부) 당 한 행. 잔액 변경은 전부 단일 UPDATE 문으로 수행한다:

    UPDATE account_balances
       SET balance = balance + :amount, ...
     WHERE user_id = :user_id AND book = :book
       AND balance >= :required          -- 차감일 때만

읽고-계산하고-쓰는 패턴을 쓰지 않으므로 동시 요청 사이에서 갱신이 유실되지 않는다.
WHERE 조건과 CHECK (balance >= 0) 제약이 함께 음수 잔액을 막는다.
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import InsufficientBalanceError, UserNotFoundError
from ledgerapi.models.balance import AccountBalance, BalanceBook
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.ledger import BalanceResponse

logger = logging.getLogger(__name__)


class BalanceRepository(BaseRepository[AccountBalance, BalanceResponse]):
    def __init__(self, db: Session):
        super().__init__(AccountBalance, BalanceResponse, db)

    def _query(self, user_id: int, book: str):
        return self.db.query(self.model_class).filter(
            self.model_class.user_id == user_id,
            self.model_class.book == book,
        )

    def find(self, user_id: int, book: str = BalanceBook.COINS.value) -> Optional[BalanceResponse]:
        """저장된 행을 DB 에서 다시 읽는다 (세션 캐시 무시)"""
        instance = self._query(user_id, book).populate_existing().first()
        return self._to_schema(instance)

    def get_or_create(
        self, user_id: int, book: str = BalanceBook.COINS.value
    ) -> BalanceResponse:
        """
        잔액 행 조회, 없으면 0 으로 생성

        동시에 처음 호출되더라도 ON CONFLICT DO NOTHING 으로 정확히 한 행만 만들어진다.
        """
        existing = self.find(user_id, book)
        if existing:
            return existing

        try:
            self._insert_ignore(
                {
                    "user_id": user_id,
                    "book": book,
                    "balance": 0,
                    "total_earned": 0,
                    "total_spent": 0,
                },
                conflict_columns=["user_id", "book"],
            )
        except IntegrityError as e:
            # users FK 위반
            raise UserNotFoundError(
                f"Account {user_id} does not exist", details={"user_id": user_id}
            ) from e

        return self.find(user_id, book)

    def get_balance(self, user_id: int, book: str = BalanceBook.COINS.value) -> int:
        """행이 없으면 0 (생성하지 않음)"""
        balance = self.find(user_id, book)
        return balance.balance if balance else 0

    def increment(
        self, user_id: int, amount: int, book: str = BalanceBook.COINS.value
    ) -> BalanceResponse:
        """
        잔액을 원자적으로 amount 만큼 변경하고 변경 후 행을 반환

        Args:
            user_id: 계정 ID (행이 이미 존재해야 함)
            amount: 부호 있는 변동량
            book: 장부

        Raises:
            InsufficientBalanceError: 차감 후 잔액이 음수가 되는 경우
        """
        model = self.model_class
        values = {
            model.balance: model.balance + amount,
            model.updated_at: func.now(),
        }
        if amount > 0:
            values[model.total_earned] = model.total_earned + amount
        elif amount < 0:
            values[model.total_spent] = model.total_spent - amount

        query = self._query(user_id, book)
        if amount < 0:
            query = query.filter(model.balance >= -amount)

        try:
            updated = query.update(values, synchronize_session=False)
        except IntegrityError as e:
            raise InsufficientBalanceError(
                details={"user_id": user_id, "book": book, "required": -amount}
            ) from e

        if updated != 1:
            current = self.find(user_id, book)
            if current is None:
                raise UserNotFoundError(
                    f"No {book} balance for account {user_id}",
                    details={"user_id": user_id, "book": book},
                )
            raise InsufficientBalanceError(
                f"Insufficient balance. Required: {-amount}, Available: {current.balance}",
                details={
                    "user_id": user_id,
                    "book": book,
                    "required": -amount,
                    "available": current.balance,
                },
            )

        return self.find(user_id, book)

    def list_accounts(self, book: Optional[str] = None) -> List[BalanceResponse]:
        query = self.db.query(self.model_class)
        if book:
            query = query.filter(self.model_class.book == book)
        return self._to_schemas(query.order_by(self.model_class.id).all())

    def total_balance(self, book: str = BalanceBook.COINS.value) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(self.model_class.balance), 0))
            .filter(self.model_class.book == book)
            .scalar()
        )
        return int(total or 0)
