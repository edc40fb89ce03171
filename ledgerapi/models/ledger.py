"""
원장(Ledger) 데이터 모델

모든 잔액 변동을 기록하는 추가 전용(append-only) 테이블.
한번 생성된 레코드는 수정/삭제되지 않으며, 정정은 상쇄 거래를 추가하는 방식으로만 한다.
"""

from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)

from ledgerapi.models.base import Base, BigIntId


class TransactionType(str, Enum):
    RECHARGE = "recharge"  # 충전 주문 승인
    CHECKIN = "checkin"  # 출석 보상
    EXCHANGE = "exchange"  # 코인으로 멤버십 교환
    CONSUME = "consume"  # 콘텐츠 소비
    ADJUST = "adjust"  # 관리자 조정
    PROMOTION = "promotion"  # 초대 보상
    COMMISSION = "commission"  # 대리상 수수료 적립
    SETTLEMENT = "settlement"  # 대리상 수수료 정산(지급)


class LedgerEntry(Base):
    """
    원장 항목 - updated_at 이 없는 이유는 불변 레코드이기 때문

    - amount: 부호 있는 변동량 (양수=적립, 음수=차감)
    - balance_after: 이 거래 직후 잔액 저장소의 값 (감사 대사 기준)
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("idx_ledger_user_book", "user_id", "book"),
        Index("idx_ledger_type", "type"),
        Index("idx_ledger_created_at", "created_at"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False)
    book = Column(String(20), nullable=False)
    type = Column(String(20), nullable=False)
    amount = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False, default="")
    # "metadata" 는 Declarative 예약어라 속성명은 extra 로 둔다
    extra = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
