"""
대리상 수수료 지급(정산) 서비스

commission 장부에서 지급액을 차감(settlement)하고, 지급 시점의
결제 수단/계좌를 스냅샷한 SettlementRecord 를 같은 트랜잭션에 남긴다.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import AgentProfileNotFoundError, ValidationError
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.balance import BalanceBook
from ledgerapi.models.ledger import TransactionType
from ledgerapi.repositories.agent_profile_repository import AgentProfileRepository
from ledgerapi.repositories.settlement_repository import SettlementRepository
from ledgerapi.schemas.agent import SettlementRecordSchema
from ledgerapi.services.coin_service import CoinService

logger = logging.getLogger(__name__)


class AgentSettlementService:
    def __init__(self, db: Session, coin_service: Optional[CoinService] = None):
        self.db = db
        self.profile_repo = AgentProfileRepository(db)
        self.settlement_repo = SettlementRepository(db)
        self.coin_service = coin_service or CoinService(db)

    def settle(
        self,
        user_id: int,
        amount: int,
        admin_id: Optional[int] = None,
        transaction_ref: Optional[str] = None,
        note: Optional[str] = None,
    ) -> SettlementRecordSchema:
        """
        수수료 지급

        Raises:
            AgentProfileNotFoundError: 대리상이 아님
            ValidationError: 결제 정보 미등록
            InsufficientBalanceError: 출금 가능 잔액 부족
        """
        profile = self.profile_repo.get(user_id)
        if not profile:
            raise AgentProfileNotFoundError(details={"user_id": user_id})
        if not profile.payment_method or not profile.payment_account:
            raise ValidationError(
                "Agent has no payment information", details={"user_id": user_id}
            )

        with unit_of_work(self.db):
            debit = self.coin_service.debit(
                user_id,
                amount,
                TransactionType.SETTLEMENT.value,
                description=f"Commission payout via {profile.payment_method}",
                metadata={"admin_id": admin_id, "transaction_ref": transaction_ref},
                book=BalanceBook.COMMISSION.value,
                commit=False,
            )
            record = self.settlement_repo.create(
                user_id=user_id,
                amount=amount,
                method=profile.payment_method,
                account=profile.payment_account,
                transaction_ref=transaction_ref,
                note=note,
                settled_by=admin_id,
                ledger_entry_id=debit.entry.id,
            )

        logger.info(
            f"Admin {admin_id} paid out {amount} to agent {user_id} "
            f"(remaining {debit.new_balance})"
        )
        return record

    def list_settlements(
        self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> List[SettlementRecordSchema]:
        return self.settlement_repo.list_records(user_id, limit, offset)
