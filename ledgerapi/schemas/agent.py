from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AgentLevelSchema(BaseModel):
    id: int
    name: str
    sort_order: int
    recruit_requirement: int = 0
    sales_requirement: int = 0
    commission_rate: int
    has_bonus: bool = False
    bonus_rate: int = 0
    enabled: bool = True

    class Config:
        from_attributes = True


class AgentLevelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    sort_order: int = Field(..., ge=0)
    recruit_requirement: int = Field(0, ge=0)
    sales_requirement: int = Field(0, ge=0, description="월 실적 조건 (분)")
    commission_rate: int = Field(1000, ge=0, le=10000, description="basis points")
    has_bonus: bool = False
    bonus_rate: int = Field(0, ge=0, le=10000)
    enabled: bool = True


class AgentLevelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    recruit_requirement: Optional[int] = Field(None, ge=0)
    sales_requirement: Optional[int] = Field(None, ge=0)
    commission_rate: Optional[int] = Field(None, ge=0, le=10000)
    has_bonus: Optional[bool] = None
    bonus_rate: Optional[int] = Field(None, ge=0, le=10000)
    enabled: Optional[bool] = None


class AgentProfileSchema(BaseModel):
    user_id: int
    level_id: int
    agent_code: Optional[str] = None
    status: str
    real_name: str = ""
    contact: str = ""
    commission_rate: int
    sub_agent_rate: int = 0
    parent_agent_id: Optional[int] = None
    payment_method: Optional[str] = None
    payment_account: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class AgentApplyRequest(BaseModel):
    real_name: str = Field(..., min_length=1, max_length=100)
    contact: str = Field(..., min_length=1, max_length=100)


class SubAgentRateRequest(BaseModel):
    sub_agent_rate: int = Field(..., description="하위 대리상에게 넘겨줄 비율 (basis points)")


class LevelChangeRequest(BaseModel):
    level_id: int = Field(..., gt=0)
    commission_rate: Optional[int] = Field(None, ge=0, le=10000, description="수수료율 직접 지정")
    reason: Optional[str] = Field(None, max_length=255)


class PaymentInfoRequest(BaseModel):
    payment_method: str
    payment_account: str = Field(..., min_length=1)


class LevelChangeLogSchema(BaseModel):
    id: int
    user_id: int
    previous_level_id: Optional[int] = None
    previous_level_name: Optional[str] = None
    new_level_id: int
    new_level_name: str
    change_type: str
    changed_by: Optional[int] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MonthlyRecordSchema(BaseModel):
    id: int
    user_id: int
    level_id: int
    agent_name: str = ""
    month: str
    recruit_count: int = 0
    total_sales: int = 0
    commission_amount: int = 0
    bonus_amount: int = 0
    total_earnings: int = 0
    status: str = "pending"
    note: str = ""

    class Config:
        from_attributes = True


class CommissionShare(BaseModel):
    """주문 1건에서 대리상 한 명이 받는 몫"""

    agent_id: int
    depth: int = Field(..., description="1 = 직접 추천인, 2 = 상위, 3 = 차상위")
    rate: int = Field(..., description="실제 적용 비율 (basis points, 통과분 포함)")
    amount: int


class UpgradeResult(BaseModel):
    upgraded: bool
    previous_level: Optional[str] = None
    new_level: Optional[str] = None
    levels_skipped: int = 0


class CommissionResult(BaseModel):
    shares: List[CommissionShare] = Field(default_factory=list)
    total_distributed: int = 0
    upgrade: Optional[UpgradeResult] = None


class AgentIncome(BaseModel):
    user_id: int
    total_income: int
    balance: int


class TeamMember(BaseModel):
    user_id: int
    real_name: str
    status: str
    commission_rate: int


class TeamInfo(BaseModel):
    commission_rate: int
    sub_agent_rate: int
    earning_rate: int
    members: List[TeamMember]


class SettlementRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    amount: int = Field(..., gt=0)
    transaction_ref: Optional[str] = None
    note: Optional[str] = None


class SettlementRecordSchema(BaseModel):
    id: int
    user_id: int
    amount: int
    method: str
    account: str
    transaction_ref: Optional[str] = None
    note: Optional[str] = None
    settled_by: Optional[int] = None
    ledger_entry_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
