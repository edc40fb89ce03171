"""
대리상(Agent) 관련 데이터 모델

- AgentLevel: 등급 사다리 (sort_order 로 전순서, 번호 재배치 없이 추가/비활성화만)
- AgentProfile: 대리상 프로필, parent_agent_id 로 자기참조 트리 구성
- AgentLevelChangeLog: 등급 변경 감사 로그 (등급명은 값으로 스냅샷)
- AgentMonthlyRecord: (대리상, 월) 단위 실적 집계, 증분 업데이트만 허용
- SettlementRecord: 수수료 지급(정산) 기록
"""

from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.schema import UniqueConstraint

from ledgerapi.models.base import Base, BaseModel, BigIntId


class AgentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    DISABLED = "disabled"


class LevelChangeType(str, Enum):
    MANUAL = "manual"
    AUTO_UPGRADE = "auto_upgrade"
    INITIAL = "initial"


class RecordStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"


class PaymentMethod(str, Enum):
    ALIPAY = "alipay"
    WECHAT = "wechat"
    BANK = "bank"


class AgentLevel(BaseModel):
    __tablename__ = "agent_levels"
    __table_args__ = (Index("idx_agent_levels_sort_order", "sort_order"),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    recruit_requirement = Column(Integer, nullable=False, default=0)  # 0 = 조건 없음
    sales_requirement = Column(BigInteger, nullable=False, default=0)  # 월 실적(분), 0 = 조건 없음
    commission_rate = Column(Integer, nullable=False, default=1000)  # basis points
    has_bonus = Column(Boolean, nullable=False, default=False)
    bonus_rate = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)


class AgentProfile(BaseModel):
    __tablename__ = "agent_profiles"
    __table_args__ = (
        Index("idx_agent_profiles_status", "status"),
        Index("idx_agent_profiles_parent", "parent_agent_id"),
    )

    user_id = Column(BigInteger, ForeignKey("users.id"), primary_key=True)
    level_id = Column(BigInteger, ForeignKey("agent_levels.id"), nullable=False)
    agent_code = Column(String(12), unique=True)
    status = Column(String(10), nullable=False, default=AgentStatus.PENDING.value)
    real_name = Column(String(100), nullable=False, default="")
    contact = Column(String(100), nullable=False, default="")
    # 본인 수수료율과 직속 하위 대리상에게 넘겨주는 비율 (basis points)
    commission_rate = Column(Integer, nullable=False, default=1000)
    sub_agent_rate = Column(Integer, nullable=False, default=0)
    parent_agent_id = Column(BigInteger, ForeignKey("agent_profiles.user_id"))
    payment_method = Column(String(10))
    payment_account = Column(Text)

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE.value

    @property
    def earning_rate(self) -> int:
        """하위에 넘겨준 뒤 본인이 보유하는 비율"""
        return self.commission_rate - self.sub_agent_rate


class AgentLevelChangeLog(Base):
    __tablename__ = "agent_level_change_logs"
    __table_args__ = (Index("idx_level_logs_user", "user_id"),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False)
    previous_level_id = Column(BigInteger)
    previous_level_name = Column(String(50))
    new_level_id = Column(BigInteger, nullable=False)
    new_level_name = Column(String(50), nullable=False)
    change_type = Column(String(20), nullable=False)
    changed_by = Column(BigInteger)  # 자동 변경이면 NULL
    reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AgentMonthlyRecord(BaseModel):
    __tablename__ = "agent_monthly_records"
    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_agent_record_user_month"),
        Index("idx_agent_records_month", "month"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False)
    level_id = Column(BigInteger, nullable=False)
    agent_name = Column(String(100), nullable=False, default="")
    month = Column(String(7), nullable=False)  # YYYY-MM
    recruit_count = Column(Integer, nullable=False, default=0)
    total_sales = Column(BigInteger, nullable=False, default=0)  # 분
    commission_amount = Column(BigInteger, nullable=False, default=0)
    bonus_amount = Column(BigInteger, nullable=False, default=0)
    total_earnings = Column(BigInteger, nullable=False, default=0)
    status = Column(String(10), nullable=False, default=RecordStatus.PENDING.value)
    note = Column(Text, nullable=False, default="")


class SettlementRecord(Base):
    __tablename__ = "settlement_records"
    __table_args__ = (Index("idx_settlement_user", "user_id"),)

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False)
    amount = Column(BigInteger, nullable=False)
    method = Column(String(10), nullable=False)
    account = Column(Text, nullable=False)  # 지급 시점 계좌 스냅샷
    transaction_ref = Column(Text)
    note = Column(Text)
    settled_by = Column(BigInteger)
    ledger_entry_id = Column(BigInteger)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
