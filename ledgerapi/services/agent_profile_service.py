"""
대리상 프로필 서비스

신청 → 승인(대리상 코드 발급, 상위 대리상 연결, 초기 등급 로그) → 반려/비활성화,
하위 통과 비율(sub_agent_rate) 설정, 등급 변경(수동/자동 승급) 을 담당한다.

수수료율 규칙 (basis points):
- 최상위 대리상(상위 없음)의 commission_rate 는 등급의 commission_rate 를 따른다
- 하위 대리상의 commission_rate 는 직속 상위의 sub_agent_rate 와 같다
- sub_agent_rate 는 0 이거나 본인 commission_rate 보다 작아야 한다
"""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from ledgerapi.config import Settings, settings as default_settings
from ledgerapi.core.exceptions import (
    AgentNotActiveError,
    AgentProfileExistsError,
    AgentProfileNotFoundError,
    InvalidAgentStatusError,
    InvalidRateError,
    LevelNotFoundError,
    ValidationError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.agent import AgentStatus, LevelChangeType, PaymentMethod
from ledgerapi.models.balance import BalanceBook
from ledgerapi.repositories.agent_level_repository import AgentLevelRepository
from ledgerapi.repositories.agent_profile_repository import AgentProfileRepository
from ledgerapi.repositories.balance_repository import BalanceRepository
from ledgerapi.repositories.level_log_repository import LevelLogRepository
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.agent import (
    AgentIncome,
    AgentLevelSchema,
    AgentProfileSchema,
    LevelChangeLogSchema,
    TeamInfo,
    TeamMember,
    UpgradeResult,
)
from ledgerapi.services.agent_record_service import AgentRecordService

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_ATTEMPTS = 10


def validate_sub_agent_rate(sub_agent_rate: int, commission_rate: int) -> None:
    if sub_agent_rate < 0 or (sub_agent_rate > 0 and sub_agent_rate >= commission_rate):
        raise InvalidRateError(
            details={"sub_agent_rate": sub_agent_rate, "commission_rate": commission_rate}
        )


class AgentProfileService:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        record_service: Optional[AgentRecordService] = None,
    ):
        self.db = db
        self.settings = settings
        self.profile_repo = AgentProfileRepository(db)
        self.level_repo = AgentLevelRepository(db)
        self.log_repo = LevelLogRepository(db)
        self.user_repo = UserRepository(db)
        self.balance_repo = BalanceRepository(db)
        self.record_service = record_service or AgentRecordService(db)

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_profile(self, user_id: int) -> AgentProfileSchema:
        profile = self.profile_repo.get(user_id)
        if not profile:
            raise AgentProfileNotFoundError(details={"user_id": user_id})
        return profile

    def is_active_agent(self, user_id: int) -> bool:
        profile = self.profile_repo.get(user_id)
        return bool(profile and profile.is_active)

    def list_profiles(
        self, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[AgentProfileSchema]:
        return self.profile_repo.list_profiles(status, limit, offset)

    def get_level_logs(self, user_id: int, limit: int = 50) -> List[LevelChangeLogSchema]:
        return self.log_repo.list_for_user(user_id, limit)

    def get_income(self, user_id: int) -> AgentIncome:
        """누적 수입과 출금 가능 잔액 (commission 장부)"""
        self.get_profile(user_id)
        balance = self.balance_repo.find(user_id, BalanceBook.COMMISSION.value)
        return AgentIncome(
            user_id=user_id,
            total_income=balance.total_earned if balance else 0,
            balance=balance.balance if balance else 0,
        )

    def get_team(self, user_id: int) -> TeamInfo:
        profile = self.get_profile(user_id)
        members = [
            TeamMember(
                user_id=child.user_id,
                real_name=child.real_name,
                status=child.status,
                commission_rate=child.commission_rate,
            )
            for child in self.profile_repo.list_children(user_id)
        ]
        return TeamInfo(
            commission_rate=profile.commission_rate,
            sub_agent_rate=profile.sub_agent_rate,
            earning_rate=profile.commission_rate - profile.sub_agent_rate,
            members=members,
        )

    # ------------------------------------------------------------------
    # 신청 / 심사
    # ------------------------------------------------------------------

    def generate_agent_code(self) -> str:
        """접두어 + 대문자/숫자 (전체 AGENT_CODE_LENGTH 자)"""
        length = self.settings.AGENT_CODE_LENGTH - len(self.settings.AGENT_CODE_PREFIX)
        for _ in range(CODE_ATTEMPTS):
            code = self.settings.AGENT_CODE_PREFIX + "".join(
                secrets.choice(CODE_ALPHABET) for _ in range(length)
            )
            if not self.profile_repo.code_exists(code):
                return code
        raise RuntimeError("Failed to generate unique agent code")

    def apply_for_agent(self, user_id: int, real_name: str, contact: str) -> AgentProfileSchema:
        """대리상 신청 - 반려된 신청은 다시 pending 으로 재신청 가능"""
        existing = self.profile_repo.get(user_id)
        now = datetime.now(timezone.utc)

        with unit_of_work(self.db):
            if existing:
                if existing.status != AgentStatus.REJECTED.value:
                    raise AgentProfileExistsError(details={"user_id": user_id})
                self.profile_repo.transition(
                    user_id,
                    [AgentStatus.REJECTED.value],
                    status=AgentStatus.PENDING.value,
                    real_name=real_name,
                    contact=contact,
                    updated_at=now,
                )
            else:
                level = self.level_repo.lowest_enabled()
                if not level:
                    raise LevelNotFoundError("No enabled agent level configured")
                self.profile_repo.create(
                    user_id=user_id,
                    level_id=level.id,
                    status=AgentStatus.PENDING.value,
                    real_name=real_name,
                    contact=contact,
                    commission_rate=level.commission_rate,
                    sub_agent_rate=0,
                )

        logger.info(f"User {user_id} applied for agent status")
        return self.profile_repo.get(user_id)

    def _resolve_parent(self, user_id: int) -> Optional[AgentProfileSchema]:
        """추천인이 하위 비율을 열어둔 활성 대리상이면 상위로 연결"""
        user = self.user_repo.find_fresh(user_id)
        if not user or not user.referred_by or user.referred_by == user_id:
            return None
        parent = self.profile_repo.get(user.referred_by)
        if parent and parent.is_active and parent.sub_agent_rate > 0:
            return parent
        return None

    def approve_agent(self, user_id: int, admin_id: Optional[int] = None) -> AgentProfileSchema:
        profile = self.get_profile(user_id)
        if profile.status not in (AgentStatus.PENDING.value, AgentStatus.REJECTED.value):
            raise InvalidAgentStatusError(details={"user_id": user_id, "status": profile.status})

        level = self.level_repo.get_by_id(profile.level_id) or self.level_repo.lowest_enabled()
        if not level:
            raise LevelNotFoundError(details={"level_id": profile.level_id})

        parent = self._resolve_parent(user_id)
        commission_rate = parent.sub_agent_rate if parent else level.commission_rate
        agent_code = profile.agent_code or self.generate_agent_code()

        with unit_of_work(self.db):
            updated = self.profile_repo.transition(
                user_id,
                [AgentStatus.PENDING.value, AgentStatus.REJECTED.value],
                status=AgentStatus.ACTIVE.value,
                agent_code=agent_code,
                level_id=level.id,
                parent_agent_id=parent.user_id if parent else None,
                commission_rate=commission_rate,
                sub_agent_rate=0,
                updated_at=datetime.now(timezone.utc),
            )
            if updated != 1:
                raise InvalidAgentStatusError(details={"user_id": user_id})
            self.log_level_change(
                user_id,
                previous_level=None,
                new_level=level,
                change_type=LevelChangeType.INITIAL.value,
                changed_by=admin_id,
                reason="Agent application approved",
            )

        logger.info(
            f"Approved agent {user_id} (code={agent_code}, parent="
            f"{parent.user_id if parent else None}, rate={commission_rate})"
        )
        return self.profile_repo.get(user_id)

    def reject_agent(self, user_id: int, admin_id: Optional[int] = None) -> AgentProfileSchema:
        self.get_profile(user_id)
        with unit_of_work(self.db):
            updated = self.profile_repo.transition(
                user_id,
                [AgentStatus.PENDING.value],
                status=AgentStatus.REJECTED.value,
                updated_at=datetime.now(timezone.utc),
            )
            if updated != 1:
                raise InvalidAgentStatusError(details={"user_id": user_id})
        logger.info(f"Admin {admin_id} rejected agent application {user_id}")
        return self.profile_repo.get(user_id)

    def disable_agent(self, user_id: int, admin_id: Optional[int] = None) -> AgentProfileSchema:
        """비활성화 - 이후 이 대리상의 몫은 상위로 통과된다"""
        return self._toggle(user_id, AgentStatus.ACTIVE.value, AgentStatus.DISABLED.value, admin_id)

    def enable_agent(self, user_id: int, admin_id: Optional[int] = None) -> AgentProfileSchema:
        return self._toggle(user_id, AgentStatus.DISABLED.value, AgentStatus.ACTIVE.value, admin_id)

    def _toggle(self, user_id: int, from_status: str, to_status: str, admin_id: Optional[int]):
        self.get_profile(user_id)
        with unit_of_work(self.db):
            updated = self.profile_repo.transition(
                user_id,
                [from_status],
                status=to_status,
                updated_at=datetime.now(timezone.utc),
            )
            if updated != 1:
                raise InvalidAgentStatusError(details={"user_id": user_id, "expected": from_status})
        logger.info(f"Admin {admin_id} changed agent {user_id}: {from_status} -> {to_status}")
        return self.profile_repo.get(user_id)

    # ------------------------------------------------------------------
    # 비율 / 결제 정보
    # ------------------------------------------------------------------

    def set_sub_agent_rate(self, user_id: int, sub_agent_rate: int) -> AgentProfileSchema:
        """
        하위 대리상에게 넘겨줄 비율 설정

        직속 하위 대리상의 commission_rate 도 같은 값으로 맞춘다.
        하위의 통과 비율이 새 비율 이상이 되는 경우 InvalidRateError.
        """
        profile = self.get_profile(user_id)
        if not profile.is_active:
            raise AgentNotActiveError(details={"user_id": user_id})
        validate_sub_agent_rate(sub_agent_rate, profile.commission_rate)

        children = self.profile_repo.list_children(user_id)
        for child in children:
            if child.sub_agent_rate > 0 and child.sub_agent_rate >= sub_agent_rate:
                raise InvalidRateError(
                    "Sub-agent already passes down a higher rate",
                    details={"child_id": child.user_id, "child_sub_agent_rate": child.sub_agent_rate},
                )

        now = datetime.now(timezone.utc)
        with unit_of_work(self.db):
            self.profile_repo.update_profile(user_id, sub_agent_rate=sub_agent_rate, updated_at=now)
            for child in children:
                self.profile_repo.update_profile(
                    child.user_id, commission_rate=sub_agent_rate, updated_at=now
                )

        logger.info(
            f"Agent {user_id} set sub_agent_rate={sub_agent_rate} "
            f"({len(children)} sub-agents resynced)"
        )
        return self.profile_repo.get(user_id)

    def update_payment_info(
        self, user_id: int, payment_method: str, payment_account: str
    ) -> AgentProfileSchema:
        if payment_method not in {m.value for m in PaymentMethod}:
            raise ValidationError(
                "Unsupported payment method", details={"payment_method": payment_method}
            )
        self.get_profile(user_id)
        with unit_of_work(self.db):
            self.profile_repo.update_profile(
                user_id,
                payment_method=payment_method,
                payment_account=payment_account,
                updated_at=datetime.now(timezone.utc),
            )
        return self.profile_repo.get(user_id)

    # ------------------------------------------------------------------
    # 등급 변경
    # ------------------------------------------------------------------

    def log_level_change(
        self,
        user_id: int,
        previous_level: Optional[AgentLevelSchema],
        new_level: AgentLevelSchema,
        change_type: str,
        changed_by: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> LevelChangeLogSchema:
        """등급명은 값으로 스냅샷 (이후 등급 이름이 바뀌어도 로그는 그대로)"""
        entry = self.log_repo.append(
            user_id=user_id,
            previous_level_id=previous_level.id if previous_level else None,
            previous_level_name=previous_level.name if previous_level else None,
            new_level_id=new_level.id,
            new_level_name=new_level.name,
            change_type=change_type,
            changed_by=changed_by,
            reason=reason,
        )
        logger.info(
            f"[Agent Level] User {user_id}: "
            f"{previous_level.name if previous_level else 'None'} -> {new_level.name} ({change_type})"
        )
        return entry

    def _apply_level(
        self,
        profile: AgentProfileSchema,
        previous_level: Optional[AgentLevelSchema],
        new_level: AgentLevelSchema,
        change_type: str,
        changed_by: Optional[int],
        reason: Optional[str],
        commission_rate: Optional[int] = None,
    ) -> None:
        if commission_rate is not None:
            new_rate = commission_rate
        elif profile.parent_agent_id is None:
            new_rate = new_level.commission_rate
        else:
            new_rate = profile.commission_rate
        validate_sub_agent_rate(profile.sub_agent_rate, new_rate)

        self.profile_repo.update_profile(
            profile.user_id,
            level_id=new_level.id,
            commission_rate=new_rate,
            updated_at=datetime.now(timezone.utc),
        )
        self.log_level_change(
            profile.user_id, previous_level, new_level, change_type, changed_by, reason
        )

    def change_level(
        self,
        user_id: int,
        level_id: int,
        admin_id: Optional[int] = None,
        commission_rate: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> AgentProfileSchema:
        """관리자 수동 등급 변경"""
        profile = self.get_profile(user_id)
        new_level = self.level_repo.get_by_id(level_id)
        if not new_level:
            raise LevelNotFoundError(details={"level_id": level_id})
        previous_level = self.level_repo.get_by_id(profile.level_id)

        with unit_of_work(self.db):
            self._apply_level(
                profile,
                previous_level,
                new_level,
                LevelChangeType.MANUAL.value,
                admin_id,
                reason or "Manual level change",
                commission_rate,
            )
        return self.profile_repo.get(user_id)

    def check_and_upgrade_level(self, user_id: int, commit: bool = True) -> UpgradeResult:
        """
        실적 기반 자동 승급

        현재 등급보다 sort_order 가 높은 활성 등급을 오름차순으로 평가한다.
        - recruit_requirement: 이 대리상을 추천인으로 가입한 사용자 수 (누적)
        - sales_requirement: 이번 달 total_sales (분)
        0 은 조건 없음. 처음으로 조건을 못 맞추는 등급에서 멈추고,
        맞춘 최고 등급으로 한 번에 올린다 (로그 1건).
        """
        profile = self.profile_repo.get(user_id)
        if not profile or not profile.is_active:
            return UpgradeResult(upgraded=False)

        current_level = self.level_repo.get_by_id(profile.level_id)
        if not current_level:
            return UpgradeResult(upgraded=False)

        candidates = [
            level
            for level in self.level_repo.list_levels(enabled_only=True)
            if level.sort_order > current_level.sort_order
        ]
        if not candidates:
            return UpgradeResult(upgraded=False)

        recruits = self.user_repo.count_referrals(user_id)
        sales = self.record_service.get_month_sales(user_id)

        target = None
        skipped = -1
        for level in candidates:
            meets_recruits = level.recruit_requirement == 0 or recruits >= level.recruit_requirement
            meets_sales = level.sales_requirement == 0 or sales >= level.sales_requirement
            if not (meets_recruits and meets_sales):
                break
            target = level
            skipped += 1

        if target is None:
            return UpgradeResult(upgraded=False)

        with unit_of_work(self.db, commit=commit):
            self._apply_level(
                profile,
                current_level,
                target,
                LevelChangeType.AUTO_UPGRADE.value,
                None,
                f"Auto upgrade: recruits={recruits}, month_sales={sales}",
            )

        logger.info(
            f"[Agent Upgrade] User {user_id} upgraded from {current_level.name} "
            f"to {target.name} (skipped {skipped} levels)"
        )
        return UpgradeResult(
            upgraded=True,
            previous_level=current_level.name,
            new_level=target.name,
            levels_skipped=skipped,
        )

    # ------------------------------------------------------------------
    # 모집 실적
    # ------------------------------------------------------------------

    def track_recruit(self, inviter_id: int, commit: bool = True) -> bool:
        """초대한 사람이 활성 대리상이면 이번 달 recruit_count 를 1 올린다"""
        profile = self.profile_repo.get(inviter_id)
        if not profile or not profile.is_active:
            return False
        with unit_of_work(self.db, commit=commit):
            self.record_service.add_recruit(profile)
        return True
