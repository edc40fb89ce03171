from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgerapi.models.base import BaseModel, BigIntId


class MemberLevel(str, Enum):
    """회원 등급"""

    FREE = "free"
    VIP = "vip"
    SVIP = "svip"


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_referred_by", "referred_by"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    referral_code: Mapped[Optional[str]] = mapped_column(
        String(12), unique=True, nullable=True
    )
    # 가입 시 사용한 초대 코드의 주인 (일반 사용자 또는 대리상)
    referred_by: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    member_level: Mapped[str] = mapped_column(
        String(10), default=MemberLevel.FREE.value, nullable=False
    )
    member_expiry: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self):
        return f"<User(id={self.id}, nickname={self.nickname}, referred_by={self.referred_by})>"
