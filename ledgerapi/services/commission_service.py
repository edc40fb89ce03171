"""
다단계 수수료 분배 (让利 모델)

각 대리상은 자신의 commission_rate 를 가지고, 그 중 sub_agent_rate 만큼을
직속 하위 대리상에게 넘겨준다. 주문 1건에 대해:

    1단계(직접 추천인)  : commission_rate
    2단계 이상           : commission_rate - sub_agent_rate

예) A(10%) -> B(6%) -> C(4%), 주문 100위안
    C 4위안, B 2위안, A 4위안 = 합계 10위안 (A 의 비율과 같다)

비활성 대리상의 몫은 다음 단계로 넘어가 더해진다. 활성 대리상이 받으면 0 으로 초기화.
단계 수는 COMMISSION_MAX_LEVELS 로 제한된다 (트리 깊이는 제한 없음).
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ledgerapi.config import Settings, settings as default_settings
from ledgerapi.core.exceptions import InvalidAmountError, LedgerError
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.balance import BalanceBook
from ledgerapi.models.ledger import TransactionType
from ledgerapi.repositories.agent_profile_repository import AgentProfileRepository
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.agent import AgentProfileSchema, CommissionResult, CommissionShare
from ledgerapi.services.agent_profile_service import AgentProfileService
from ledgerapi.services.agent_record_service import AgentRecordService
from ledgerapi.services.coin_service import CoinService
from ledgerapi.utils.timezone_utils import get_current_month

logger = logging.getLogger(__name__)

BASIS_POINTS = 10000


def calculate_shares(
    chain: List[AgentProfileSchema], order_amount: int
) -> List[CommissionShare]:
    """
    추천 사슬(직접 추천인부터 위로)에 대한 수수료 몫 계산 - 부작용 없음

    Args:
        chain: 1단계부터 순서대로의 대리상 프로필
        order_amount: 주문 금액 (분)

    Returns:
        활성 대리상별 몫 (amount 가 0 인 항목 포함)
    """
    shares: List[CommissionShare] = []
    pass_through = 0

    for depth, agent in enumerate(chain, start=1):
        if depth == 1:
            rate = agent.commission_rate
        else:
            rate = agent.commission_rate - agent.sub_agent_rate
        rate += pass_through

        if agent.is_active:
            shares.append(
                CommissionShare(
                    agent_id=agent.user_id,
                    depth=depth,
                    rate=rate,
                    amount=order_amount * rate // BASIS_POINTS,
                )
            )
            pass_through = 0
        else:
            pass_through = rate

    return shares


class CommissionService:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        coin_service: Optional[CoinService] = None,
        agent_profile_service: Optional[AgentProfileService] = None,
        record_service: Optional[AgentRecordService] = None,
    ):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.profile_repo = AgentProfileRepository(db)
        self.coin_service = coin_service or CoinService(db)
        self.record_service = record_service or AgentRecordService(db)
        self.agent_profile_service = agent_profile_service or AgentProfileService(
            db, settings, record_service=self.record_service
        )

    def resolve_chain(self, direct: AgentProfileSchema) -> List[AgentProfileSchema]:
        """직접 추천인부터 parent_agent_id 를 따라 최대 COMMISSION_MAX_LEVELS 단계"""
        chain = [direct]
        visited = {direct.user_id}
        current = direct

        while len(chain) < self.settings.COMMISSION_MAX_LEVELS and current.parent_agent_id:
            if current.parent_agent_id in visited:
                logger.error(
                    f"Agent hierarchy cycle detected at {current.user_id} -> {current.parent_agent_id}"
                )
                break
            parent = self.profile_repo.get(current.parent_agent_id)
            if not parent:
                break
            chain.append(parent)
            visited.add(parent.user_id)
            current = parent

        return chain

    def distribute_commission(
        self,
        buyer_id: int,
        order_amount: int,
        explicit_agent_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> CommissionResult:
        """
        주문 1건의 수수료 분배

        주문 승인과 같은 트랜잭션에서 호출해야 한다 (commit=False).
        수수료 적립, 월 실적 증분, 직접 추천인 자동 승급까지 한 트랜잭션.
        """
        if order_amount < 0:
            raise InvalidAmountError(
                "Order amount cannot be negative", details={"order_amount": order_amount}
            )

        referrer_id = explicit_agent_id
        if not referrer_id:
            buyer = self.user_repo.find_fresh(buyer_id)
            referrer_id = buyer.referred_by if buyer else None

        if not referrer_id or referrer_id == buyer_id:
            return CommissionResult()

        direct = self.profile_repo.get(referrer_id)
        if not direct:
            return CommissionResult()

        chain = self.resolve_chain(direct)
        shares = calculate_shares(chain, order_amount)
        profiles = {agent.user_id: agent for agent in chain}
        month = get_current_month()
        upgrade = None

        with unit_of_work(self.db, commit=commit):
            for share in shares:
                if share.amount <= 0:
                    continue
                self.coin_service.credit(
                    share.agent_id,
                    share.amount,
                    TransactionType.COMMISSION.value,
                    description=f"Level {share.depth} commission from user {buyer_id}",
                    metadata={
                        **(metadata or {}),
                        "buyer_id": buyer_id,
                        "order_amount": order_amount,
                        "depth": share.depth,
                        "rate": share.rate,
                    },
                    book=BalanceBook.COMMISSION.value,
                    commit=False,
                )
                self.record_service.add_sale(
                    profiles[share.agent_id], order_amount, share.amount, month
                )

            if direct.is_active:
                try:
                    upgrade = self.agent_profile_service.check_and_upgrade_level(
                        direct.user_id, commit=False
                    )
                except LedgerError as e:
                    logger.warning(f"Auto upgrade skipped for agent {direct.user_id}: {e.message}")

        distributed = sum(share.amount for share in shares)
        for share in shares:
            logger.info(
                f"[Commission] Level {share.depth} agent {share.agent_id}: "
                f"{share.amount} ({share.rate}bp of {order_amount})"
            )
        logger.info(
            f"[Commission] Buyer {buyer_id} order {order_amount}: "
            f"distributed {distributed} to {len(shares)} agents"
        )
        return CommissionResult(shares=shares, total_distributed=distributed, upgrade=upgrade)
