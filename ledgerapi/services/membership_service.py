"""
멤버십 서비스

- 활성화: 아직 유효한 멤버십이면 현재 만료일 뒤로 기간을 이어 붙이고,
  만료되었거나 무료 회원이면 지금부터 계산한다.
- 코인 교환: 코인 차감(exchange)과 활성화를 한 트랜잭션으로 처리한다.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import (
    InvalidAmountError,
    PlanNotFoundError,
    UserNotFoundError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.ledger import TransactionType
from ledgerapi.models.user import MemberLevel
from ledgerapi.repositories.membership_plan_repository import MembershipPlanRepository
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.membership import (
    ActivationResult,
    ExchangeResult,
    MembershipPlanSchema,
    MembershipStatus,
)
from ledgerapi.services.coin_service import CoinService

logger = logging.getLogger(__name__)


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite 는 tzinfo 를 보존하지 않는다
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def calculate_new_expiry(
    current_expiry: Optional[datetime], duration_days: int, now: Optional[datetime] = None
) -> datetime:
    """유효한 멤버십이면 기존 만료일에서, 아니면 현재 시각에서 연장"""
    now = now or datetime.now(timezone.utc)
    current_expiry = _aware(current_expiry)
    base = current_expiry if current_expiry and current_expiry > now else now
    return base + timedelta(days=duration_days)


class MembershipService:
    def __init__(self, db: Session, coin_service: Optional[CoinService] = None):
        self.db = db
        self.user_repo = UserRepository(db)
        self.plan_repo = MembershipPlanRepository(db)
        self.coin_service = coin_service or CoinService(db)

    def list_plans(self) -> List[MembershipPlanSchema]:
        return self.plan_repo.list_enabled()

    def get_plan(self, plan_id: int) -> MembershipPlanSchema:
        plan = self.plan_repo.get_enabled(plan_id)
        if not plan:
            raise PlanNotFoundError(details={"plan_id": plan_id})
        return plan

    def get_status(self, user_id: int) -> MembershipStatus:
        user = self.user_repo.find_fresh(user_id)
        if not user:
            raise UserNotFoundError(details={"user_id": user_id})

        now = datetime.now(timezone.utc)
        expiry = _aware(user.member_expiry)
        is_active = (
            user.member_level != MemberLevel.FREE.value
            and expiry is not None
            and expiry > now
        )
        days_remaining = (expiry - now).days if is_active else 0
        return MembershipStatus(
            user_id=user_id,
            member_level=user.member_level if is_active else MemberLevel.FREE.value,
            member_expiry=expiry,
            is_active=is_active,
            days_remaining=days_remaining,
        )

    def activate(
        self,
        user_id: int,
        member_level: str,
        duration_days: int,
        commit: bool = True,
    ) -> ActivationResult:
        """멤버십 활성화/연장

        같은 트랜잭션 안의 다른 변경(주문 승인 등)과 함께 커밋되려면 commit=False.
        """
        if duration_days <= 0:
            raise InvalidAmountError(
                "Membership duration must be positive",
                details={"duration_days": duration_days},
            )

        with unit_of_work(self.db, commit=commit):
            user = self.user_repo.find_fresh(user_id)
            if not user:
                raise UserNotFoundError(details={"user_id": user_id})

            new_expiry = calculate_new_expiry(user.member_expiry, duration_days)
            self.user_repo.set_membership(user_id, member_level, new_expiry)

        logger.info(
            f"Activated {member_level} for user {user_id} "
            f"(+{duration_days}d, expires {new_expiry.isoformat()})"
        )
        return ActivationResult(
            user_id=user_id,
            previous_level=user.member_level,
            previous_expiry=user.member_expiry,
            new_level=member_level,
            new_expiry=new_expiry,
        )

    def exchange_coins_for_membership(self, user_id: int, plan_id: int) -> ExchangeResult:
        """코인으로 멤버십 교환 - 코인 부족 시 아무것도 바뀌지 않는다"""
        plan = self.get_plan(plan_id)
        if plan.coin_price <= 0:
            raise PlanNotFoundError(
                "Membership plan cannot be exchanged for coins",
                details={"plan_id": plan_id},
            )

        with unit_of_work(self.db):
            debit = self.coin_service.debit(
                user_id,
                plan.coin_price,
                TransactionType.EXCHANGE.value,
                description=f"Exchange for {plan.name}",
                metadata={"plan_id": plan.id, "member_level": plan.member_level},
                commit=False,
            )
            activation = self.activate(
                user_id, plan.member_level, plan.duration_days, commit=False
            )

        return ExchangeResult(
            coins_deducted=plan.coin_price,
            new_balance=debit.new_balance,
            activation=activation,
        )
