from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MembershipPlanSchema(BaseModel):
    id: int
    name: str
    member_level: str
    duration_days: int
    price: int
    coin_price: int = 0
    enabled: bool = True

    class Config:
        from_attributes = True


class MembershipStatus(BaseModel):
    user_id: int
    member_level: str
    member_expiry: Optional[datetime] = None
    is_active: bool
    days_remaining: int


class ActivationResult(BaseModel):
    user_id: int
    previous_level: str
    previous_expiry: Optional[datetime] = None
    new_level: str
    new_expiry: datetime


class ExchangeRequest(BaseModel):
    plan_id: int = Field(..., gt=0)


class ExchangeResult(BaseModel):
    coins_deducted: int
    new_balance: int
    activation: ActivationResult
