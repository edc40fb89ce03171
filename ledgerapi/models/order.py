from enum import Enum

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)

from ledgerapi.models.base import BaseModel, BigIntId


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"  # 사용자가 결제 증빙을 제출함
    APPROVED = "approved"
    REJECTED = "rejected"


class ItemType(str, Enum):
    COIN_PACKAGE = "coin_package"
    MEMBERSHIP_PLAN = "membership_plan"


class PaymentType(str, Enum):
    WECHAT = "wechat"
    ALIPAY = "alipay"


class Order(BaseModel):
    """코인 충전 / 멤버십 구매 주문"""

    __tablename__ = "orders"
    __table_args__ = (
        # 같은 (구매자, 상품) 조합의 pending 주문은 하나만 허용
        Index(
            "uq_orders_user_item_pending",
            "user_id",
            "item_type",
            "item_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("idx_orders_status", "status"),
        Index("idx_orders_agent_id", "agent_id"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    order_no = Column(String(32), nullable=False, unique=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)

    item_type = Column(String(20), nullable=False)
    item_id = Column(String(64), nullable=False)
    # 주문 시점의 상품 스냅샷
    coins = Column(Integer, nullable=False, default=0)
    member_level = Column(String(10))
    duration_days = Column(Integer, nullable=False, default=0)

    amount = Column(BigInteger, nullable=False)  # 결제 금액 (분)
    status = Column(String(10), nullable=False, default=OrderStatus.PENDING.value)
    payment_type = Column(String(10))
    remark_code = Column(String(6))
    payment_screenshot = Column(Text)
    transaction_note = Column(Text)

    agent_id = Column(BigInteger, ForeignKey("users.id"))  # 명시적 대리상 귀속
    reviewed_by = Column(BigInteger)
    reviewed_at = Column(DateTime(timezone=True))
