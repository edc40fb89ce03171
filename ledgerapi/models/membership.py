from sqlalchemy import BigInteger, Boolean, Column, Integer, String

from ledgerapi.models.base import BaseModel, BigIntId


class MembershipPlan(BaseModel):
    __tablename__ = "membership_plans"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    member_level = Column(String(10), nullable=False)
    duration_days = Column(Integer, nullable=False)
    price = Column(BigInteger, nullable=False)  # 분
    coin_price = Column(BigInteger, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)
