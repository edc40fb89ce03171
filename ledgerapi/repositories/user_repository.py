from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ledgerapi.models.user import User as UserModel
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.user import User as UserSchema


class UserRepository(BaseRepository[UserModel, UserSchema]):
    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def find_fresh(self, user_id: int) -> Optional[UserSchema]:
        instance = (
            self.db.query(self.model_class)
            .populate_existing()
            .filter(self.model_class.id == user_id)
            .first()
        )
        return self._to_schema(instance)

    def get_by_referral_code(self, code: str) -> Optional[UserSchema]:
        instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.referral_code == code)
            .first()
        )
        return self._to_schema(instance)

    def referral_code_exists(self, code: str) -> bool:
        return self.exists({"referral_code": code})

    def set_referrer(self, user_id: int, referrer_id: int) -> bool:
        """추천인은 한 번만 설정된다 (이미 있으면 False)"""
        updated = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == user_id,
                self.model_class.referred_by.is_(None),
            )
            .update({self.model_class.referred_by: referrer_id}, synchronize_session=False)
        )
        return updated == 1

    def set_membership(self, user_id: int, member_level: str, member_expiry: datetime) -> None:
        self.db.query(self.model_class).filter(self.model_class.id == user_id).update(
            {
                self.model_class.member_level: member_level,
                self.model_class.member_expiry: member_expiry,
            },
            synchronize_session=False,
        )

    def count_referrals(self, referrer_id: int) -> int:
        """추천인으로 가입한 사용자 수 (모집 인원)"""
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.referred_by == referrer_id)
            .count()
        )
