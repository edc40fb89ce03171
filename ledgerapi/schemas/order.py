from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrderSchema(BaseModel):
    id: int
    order_no: str
    user_id: int
    item_type: str
    item_id: str
    coins: int = 0
    member_level: Optional[str] = None
    duration_days: int = 0
    amount: int = Field(..., description="결제 금액 (분)")
    status: str
    payment_type: Optional[str] = None
    remark_code: Optional[str] = None
    payment_screenshot: Optional[str] = None
    transaction_note: Optional[str] = None
    agent_id: Optional[int] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreateCoinOrderRequest(BaseModel):
    package_id: str = Field(..., min_length=1)
    price: Optional[int] = Field(None, description="클라이언트에 표시된 가격 (분), 패키지 가격과 다르면 거부")
    payment_type: Optional[str] = None
    agent_id: Optional[int] = None


class CreateMembershipOrderRequest(BaseModel):
    plan_id: int = Field(..., gt=0)
    payment_type: Optional[str] = None
    agent_id: Optional[int] = None


class SubmitProofRequest(BaseModel):
    screenshot: Optional[str] = None
    transaction_note: Optional[str] = Field(None, max_length=255)


class RejectOrderRequest(BaseModel):
    reason: str = Field("", max_length=255)


class ApproveOrderResponse(BaseModel):
    order: OrderSchema
    credited: bool = Field(..., description="코인 적립 또는 멤버십 활성화 여부")


class RejectOrderResponse(BaseModel):
    deleted: bool = True


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    total_count: int
    has_next: bool
