"""
코인/수수료 원장 서비스

잔액을 바꾸는 모든 경로는 이 서비스를 거친다. 한 번의 호출은:
1. 잔액 행 확보 (get_or_create)
2. 원자적 증감 (balance = balance + :amount)
3. 같은 트랜잭션 안에서 원장 항목 추가 (balance_after = 증감 직후 값)

commit=False 로 호출하면 바깥 트랜잭션(주문 승인, 수수료 분배 등)에 참여한다.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransactionTypeError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.balance import BalanceBook
from ledgerapi.models.ledger import TransactionType
from ledgerapi.repositories.balance_repository import BalanceRepository
from ledgerapi.repositories.ledger_repository import LedgerRepository
from ledgerapi.schemas.ledger import (
    BalanceResponse,
    BatchAdjustResult,
    IntegrityCheckResponse,
    LedgerPageResponse,
    LedgerTransactionResult,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
TRANSACTION_TYPES = frozenset(t.value for t in TransactionType)


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


def _check_amount(amount, action: str, allow_negative: bool = False) -> None:
    """정수 금액만 허용 (bool 과 float 은 거부)"""
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmountError(
            f"{action} amount must be an integer", details={"amount": repr(amount)}
        )
    if amount == 0 or (amount < 0 and not allow_negative):
        qualifier = "cannot be zero" if allow_negative else "must be positive"
        raise InvalidAmountError(
            f"{action} amount {qualifier}", details={"amount": amount}
        )


def _check_type(type) -> str:
    type = _value(type)
    if type not in TRANSACTION_TYPES:
        raise InvalidTransactionTypeError(
            details={"type": type, "allowed": sorted(TRANSACTION_TYPES)}
        )
    return type


class CoinService:
    """잔액 저장소와 원장을 함께 다루는 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.balance_repo = BalanceRepository(db)
        self.ledger_repo = LedgerRepository(db)

    def get_balance(
        self, user_id: int, book: str = BalanceBook.COINS.value
    ) -> BalanceResponse:
        """잔액 조회 - 행이 없으면 0 잔액 행을 만든다"""
        with unit_of_work(self.db):
            balance = self.balance_repo.get_or_create(user_id, _value(book))
        return balance

    def credit(
        self,
        user_id: int,
        amount: int,
        type: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        book: str = BalanceBook.COINS.value,
        commit: bool = True,
    ) -> LedgerTransactionResult:
        """잔액 적립

        Raises:
            InvalidAmountError: 정수가 아니거나 amount <= 0
            InvalidTransactionTypeError: TransactionType 에 없는 유형
        """
        _check_amount(amount, "Credit")
        type = _check_type(type)

        with unit_of_work(self.db, commit=commit):
            result = self._apply(user_id, amount, type, description, metadata, book)

        logger.info(
            f"Credited {amount} {_value(book)} to user {user_id} "
            f"({_value(type)}), balance={result.new_balance}"
        )
        return result

    def debit(
        self,
        user_id: int,
        amount: int,
        type: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        book: str = BalanceBook.COINS.value,
        commit: bool = True,
    ) -> LedgerTransactionResult:
        """잔액 차감

        Raises:
            InvalidAmountError: 정수가 아니거나 amount <= 0
            InvalidTransactionTypeError: TransactionType 에 없는 유형
            InsufficientBalanceError: 잔액 부족 (잔액/원장 모두 변경 없음)
        """
        _check_amount(amount, "Debit")
        type = _check_type(type)

        with unit_of_work(self.db, commit=commit):
            result = self._apply(user_id, -amount, type, description, metadata, book)

        logger.info(
            f"Debited {amount} {_value(book)} from user {user_id} "
            f"({_value(type)}), balance={result.new_balance}"
        )
        return result

    def adjust(
        self,
        user_id: int,
        amount: int,
        admin_id: Optional[int],
        note: str,
        book: str = BalanceBook.COINS.value,
        commit: bool = True,
    ) -> LedgerTransactionResult:
        """관리자 조정 (부호 있는 금액, 0 불가)"""
        _check_amount(amount, "Adjust", allow_negative=True)

        with unit_of_work(self.db, commit=commit):
            result = self._apply(
                user_id,
                amount,
                TransactionType.ADJUST.value,
                note,
                {"admin_id": admin_id, "note": note},
                book,
            )

        logger.info(
            f"Admin {admin_id} adjusted user {user_id} by {amount}: {note}"
        )
        return result

    def batch_adjust(
        self,
        user_ids: List[int],
        amount: int,
        admin_id: Optional[int],
        note: str,
        book: str = BalanceBook.COINS.value,
    ) -> BatchAdjustResult:
        """일괄 조정 - 전부 성공하거나 전부 실패 (단일 트랜잭션)"""
        _check_amount(amount, "Adjust", allow_negative=True)

        entries = []
        try:
            with unit_of_work(self.db):
                for user_id in user_ids:
                    result = self._apply(
                        user_id,
                        amount,
                        TransactionType.ADJUST.value,
                        note,
                        {"admin_id": admin_id, "note": note, "batch": True},
                        book,
                    )
                    entries.append(result.entry)
        except InsufficientBalanceError as e:
            logger.warning(
                f"Batch adjust by admin {admin_id} rolled back: {e.message} {e.details}"
            )
            raise

        logger.info(
            f"Admin {admin_id} batch adjusted {len(entries)} users by {amount}: {note}"
        )
        return BatchAdjustResult(affected_count=len(entries), entries=entries)

    def _apply(
        self,
        user_id: int,
        delta: int,
        type: str,
        description: Optional[str],
        metadata: Optional[Dict[str, Any]],
        book: str,
    ) -> LedgerTransactionResult:
        book = _value(book)
        current = self.balance_repo.get_or_create(user_id, book)

        # 잔액 부족 사전 검사 (최종 방어선은 UPDATE 조건과 CHECK 제약)
        if delta < 0 and current.balance < -delta:
            raise InsufficientBalanceError(
                f"Insufficient balance. Required: {-delta}, Available: {current.balance}",
                details={
                    "user_id": user_id,
                    "book": book,
                    "required": -delta,
                    "available": current.balance,
                },
            )

        updated = self.balance_repo.increment(user_id, delta, book)
        entry = self.ledger_repo.append(
            user_id=user_id,
            book=book,
            type=_value(type),
            amount=delta,
            balance_after=updated.balance,
            description=description,
            metadata=metadata,
        )
        return LedgerTransactionResult(entry=entry, new_balance=updated.balance)

    def get_ledger(
        self,
        user_id: int,
        book: str = BalanceBook.COINS.value,
        limit: int = 50,
        offset: int = 0,
        type: Optional[str] = None,
    ) -> LedgerPageResponse:
        """원장 조회 (최신순, 페이징)"""
        if limit > MAX_PAGE_SIZE:
            limit = MAX_PAGE_SIZE
        book = _value(book)

        entries = self.ledger_repo.list_entries(user_id, book, limit, offset, type)
        total_count = self.ledger_repo.count_entries(user_id, book, type)
        return LedgerPageResponse(
            balance=self.balance_repo.get_balance(user_id, book),
            entries=entries,
            total_count=total_count,
            has_next=offset + len(entries) < total_count,
        )

    def verify_integrity(
        self, user_id: int, book: str = BalanceBook.COINS.value
    ) -> IntegrityCheckResponse:
        """
        계정 단위 대사

        - 잔액 저장소 == 원장 변동량 합계
        - 잔액 저장소 == 최신 원장 항목의 balance_after
        """
        book = _value(book)
        stored = self.balance_repo.get_balance(user_id, book)
        ledger_sum = self.ledger_repo.sum_amounts(user_id, book)
        latest = self.ledger_repo.latest(user_id, book)
        last_balance_after = latest.balance_after if latest else 0

        ok = stored == ledger_sum == last_balance_after
        if not ok:
            logger.error(
                f"Ledger mismatch for user {user_id}/{book}: stored={stored}, "
                f"sum={ledger_sum}, last_balance_after={last_balance_after}"
            )

        return IntegrityCheckResponse(
            status="OK" if ok else "MISMATCH",
            user_id=user_id,
            book=book,
            stored_balance=stored,
            ledger_sum=ledger_sum,
            last_balance_after=last_balance_after,
            entry_count=self.ledger_repo.count_entries(user_id, book),
            verified_at=datetime.now(timezone.utc).isoformat(),
        )

    def verify_global_integrity(
        self, book: str = BalanceBook.COINS.value
    ) -> IntegrityCheckResponse:
        """전체 대사 - 잔액 합계 == 원장 변동량 합계"""
        book = _value(book)
        stored = self.balance_repo.total_balance(book)
        ledger_sum = self.ledger_repo.total_amount(book)
        ok = stored == ledger_sum
        if not ok:
            logger.error(f"Global ledger mismatch for {book}: stored={stored}, sum={ledger_sum}")

        return IntegrityCheckResponse(
            status="OK" if ok else "MISMATCH",
            book=book,
            stored_balance=stored,
            ledger_sum=ledger_sum,
            entry_count=self.ledger_repo.count_all(book),
            account_count=len(self.balance_repo.list_accounts(book)),
            verified_at=datetime.now(timezone.utc).isoformat(),
        )
