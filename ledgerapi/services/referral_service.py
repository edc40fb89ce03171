"""
추천(초대) 서비스

초대 코드는 두 종류:
- 대리상 코드 (AGENT_CODE_PREFIX 로 시작, AGENT_CODE_LENGTH 자): 활성 대리상에게 연결
- 일반 추천 코드: 사용자 간 초대

연결, 양쪽 promotion 보상, 대리상 모집 실적 증가가 한 트랜잭션으로 처리된다.
"""

import logging
import secrets
import string
from typing import Optional

from sqlalchemy.orm import Session

from ledgerapi.config import Settings, settings as default_settings
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.balance import BalanceBook
from ledgerapi.models.ledger import TransactionType
from ledgerapi.repositories.agent_profile_repository import AgentProfileRepository
from ledgerapi.repositories.ledger_repository import LedgerRepository
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.user import ReferralStats
from ledgerapi.services.agent_profile_service import AgentProfileService
from ledgerapi.services.coin_service import CoinService

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 6


class ReferralService:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        coin_service: Optional[CoinService] = None,
        agent_profile_service: Optional[AgentProfileService] = None,
    ):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.profile_repo = AgentProfileRepository(db)
        self.ledger_repo = LedgerRepository(db)
        self.coin_service = coin_service or CoinService(db)
        self.agent_profile_service = agent_profile_service or AgentProfileService(db, settings)

    def generate_referral_code(self) -> str:
        for _ in range(3):
            code = "".join(
                secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH)
            )
            if not self.user_repo.referral_code_exists(code):
                return code
        raise RuntimeError("Failed to generate unique referral code")

    def _is_agent_code(self, code: str) -> bool:
        return (
            code.startswith(self.settings.AGENT_CODE_PREFIX)
            and len(code) == self.settings.AGENT_CODE_LENGTH
        )

    def resolve_inviter(self, code: str) -> Optional[int]:
        """대리상 코드(활성 대리상만) 우선, 없으면 일반 추천 코드"""
        if self._is_agent_code(code):
            profile = self.profile_repo.get_by_code(code)
            if profile and profile.is_active:
                return profile.user_id

        inviter = self.user_repo.get_by_referral_code(code)
        return inviter.id if inviter else None

    def process_referral(self, new_user_id: int, code: Optional[str]) -> bool:
        """
        신규 가입자를 초대자에게 연결하고 보상 지급

        Returns:
            bool: 연결 여부 (잘못된 코드, 본인 코드, 이미 연결된 사용자면 False)
        """
        if not code:
            return False

        inviter_id = self.resolve_inviter(code)
        if not inviter_id:
            logger.warning(f"Invalid referral/agent code used: {code} by user {new_user_id}")
            return False
        if inviter_id == new_user_id:
            return False

        inviter_reward = self.settings.REFERRAL_REWARD_INVITER
        invitee_reward = self.settings.REFERRAL_REWARD_INVITEE

        with unit_of_work(self.db):
            if not self.user_repo.set_referrer(new_user_id, inviter_id):
                logger.warning(f"User {new_user_id} already has a referrer, ignoring code {code}")
                return False

            if inviter_reward > 0:
                self.coin_service.credit(
                    inviter_id,
                    inviter_reward,
                    TransactionType.PROMOTION.value,
                    description="Invite reward",
                    metadata={"invited_user_id": new_user_id},
                    commit=False,
                )
            if invitee_reward > 0:
                self.coin_service.credit(
                    new_user_id,
                    invitee_reward,
                    TransactionType.PROMOTION.value,
                    description="Signup reward",
                    metadata={"inviter_id": inviter_id, "code": code},
                    commit=False,
                )
            self.agent_profile_service.track_recruit(inviter_id, commit=False)

        logger.info(f"User {new_user_id} linked to inviter {inviter_id} via {code}")
        return True

    def get_referral_stats(self, user_id: int) -> ReferralStats:
        return ReferralStats(
            invite_count=self.user_repo.count_referrals(user_id),
            total_income=self.ledger_repo.sum_amounts(
                user_id, BalanceBook.COINS.value, TransactionType.PROMOTION.value
            ),
        )
