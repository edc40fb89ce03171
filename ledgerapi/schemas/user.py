from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    id: int
    nickname: str
    referral_code: Optional[str] = None
    referred_by: Optional[int] = None
    member_level: str = "free"
    member_expiry: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReferralStats(BaseModel):
    invite_count: int
    total_income: int
