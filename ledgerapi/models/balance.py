"""
잔액 저장소 데이터 모델

계정(사용자 또는 대리상) 마다, 장부(book) 마다 정확히 한 행을 가진다.
- coins: 사용자 코인 잔액
- commission: 대리상 수수료 잔액 (total_earned = 누적 수입, balance = 출금 가능액)

balance 컬럼은 반드시 원자적 UPDATE (balance = balance + :amount) 로만 변경한다.
"""

from enum import Enum

from sqlalchemy import BigInteger, CheckConstraint, Column, ForeignKey, String
from sqlalchemy.schema import UniqueConstraint

from ledgerapi.models.base import BaseModel, BigIntId


class BalanceBook(str, Enum):
    COINS = "coins"
    COMMISSION = "commission"


class AccountBalance(BaseModel):
    __tablename__ = "account_balances"
    __table_args__ = (
        UniqueConstraint("user_id", "book", name="uq_account_balance_user_book"),
        # 동시 차감 경쟁 상황에서의 최종 방어선
        CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    book = Column(String(20), nullable=False, default=BalanceBook.COINS.value)
    balance = Column(BigInteger, nullable=False, default=0)
    total_earned = Column(BigInteger, nullable=False, default=0)
    total_spent = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<AccountBalance(user_id={self.user_id}, book={self.book}, balance={self.balance})>"
