"""
주문 서비스 - 코인 충전 / 멤버십 구매 주문의 상태 머신

    pending --(결제 증빙 제출)--> paid --(승인)--> approved
    pending|paid --(반려)--> 행 삭제

승인은 조건부 UPDATE (WHERE status IN ('pending','paid')) 로 정확히 한 번만 성공한다.
승인 성공 시 코인 적립/멤버십 활성화와 수수료 분배가 같은 트랜잭션에서 커밋된다.
"""

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerapi.config import Settings, settings as default_settings
from ledgerapi.core.exceptions import (
    DuplicatePendingOrderError,
    InvalidPackageError,
    OrderAlreadyProcessedError,
    OrderNotFoundError,
    ValidationError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.ledger import TransactionType
from ledgerapi.models.order import ItemType, OrderStatus, PaymentType
from ledgerapi.repositories.order_repository import OrderRepository
from ledgerapi.schemas.order import (
    ApproveOrderResponse,
    OrderListResponse,
    OrderSchema,
    RejectOrderResponse,
)
from ledgerapi.services.coin_service import CoinService
from ledgerapi.services.commission_service import CommissionService
from ledgerapi.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

BASE36 = string.digits + string.ascii_lowercase
OPEN_STATUSES = [OrderStatus.PENDING.value, OrderStatus.PAID.value]
ORDER_NO_PREFIX = {
    ItemType.COIN_PACKAGE.value: "C",
    ItemType.MEMBERSHIP_PLAN.value: "M",
}


def generate_order_no(item_type: str) -> str:
    """접두어(C/M) + epoch 밀리초 + base36 6자"""
    suffix = "".join(secrets.choice(BASE36) for _ in range(6)).upper()
    return f"{ORDER_NO_PREFIX[item_type]}{int(time.time() * 1000)}{suffix}"


def generate_remark_code() -> str:
    """결제 메모에 적는 4자리 식별 번호"""
    return f"{secrets.randbelow(10000):04d}"


class OrderService:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        coin_service: Optional[CoinService] = None,
        membership_service: Optional[MembershipService] = None,
        commission_service: Optional[CommissionService] = None,
    ):
        self.db = db
        self.settings = settings
        self.order_repo = OrderRepository(db)
        self.coin_service = coin_service or CoinService(db)
        self.membership_service = membership_service or MembershipService(
            db, coin_service=self.coin_service
        )
        self.commission_service = commission_service or CommissionService(
            db, settings, coin_service=self.coin_service
        )

    # ------------------------------------------------------------------
    # 생성
    # ------------------------------------------------------------------

    def _validate_payment_type(self, payment_type: Optional[str]) -> None:
        if payment_type and payment_type not in {p.value for p in PaymentType}:
            raise ValidationError(
                "Unsupported payment type", details={"payment_type": payment_type}
            )

    def create_coin_order(
        self,
        user_id: int,
        package_id: str,
        payment_type: Optional[str] = None,
        agent_id: Optional[int] = None,
        expected_price: Optional[int] = None,
    ) -> OrderSchema:
        """코인 충전 주문 - 설정된 패키지와 금액이 일치해야 한다"""
        package = next(
            (p for p in self.settings.COIN_PACKAGES if p.id == package_id), None
        )
        if not package:
            raise InvalidPackageError(details={"package_id": package_id})
        if expected_price is not None and expected_price != package.price:
            raise InvalidPackageError(
                "Price does not match the recharge package",
                details={"package_id": package_id, "price": expected_price},
            )
        self._validate_payment_type(payment_type)

        return self._create(
            user_id=user_id,
            item_type=ItemType.COIN_PACKAGE.value,
            item_id=package.id,
            coins=package.total_coins,
            amount=package.price,
            payment_type=payment_type,
            agent_id=agent_id,
        )

    def create_membership_order(
        self,
        user_id: int,
        plan_id: int,
        payment_type: Optional[str] = None,
        agent_id: Optional[int] = None,
    ) -> OrderSchema:
        plan = self.membership_service.get_plan(plan_id)
        self._validate_payment_type(payment_type)

        return self._create(
            user_id=user_id,
            item_type=ItemType.MEMBERSHIP_PLAN.value,
            item_id=str(plan.id),
            member_level=plan.member_level,
            duration_days=plan.duration_days,
            amount=plan.price,
            payment_type=payment_type,
            agent_id=agent_id,
        )

    def _create(self, user_id: int, item_type: str, item_id: str, **fields) -> OrderSchema:
        if self.order_repo.has_pending_order(user_id, item_type, item_id):
            raise DuplicatePendingOrderError(
                details={"item_type": item_type, "item_id": item_id}
            )

        try:
            with unit_of_work(self.db):
                order = self.order_repo.create(
                    order_no=generate_order_no(item_type),
                    user_id=user_id,
                    item_type=item_type,
                    item_id=item_id,
                    status=OrderStatus.PENDING.value,
                    remark_code=generate_remark_code(),
                    **fields,
                )
        except IntegrityError as e:
            # 사전 검사와 INSERT 사이에 같은 상품의 pending 주문이 먼저 들어온 경우
            if "item_id" in str(e) or "uq_orders_user_item_pending" in str(e):
                raise DuplicatePendingOrderError(
                    details={"item_type": item_type, "item_id": item_id}
                ) from e
            raise

        logger.info(
            f"Created order {order.order_no} for user {user_id}: "
            f"{item_type}/{item_id} amount={order.amount}"
        )
        return order

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_order(self, order_id: int, user_id: Optional[int] = None) -> OrderSchema:
        """user_id 를 주면 본인 주문만 (타인 주문은 없는 것으로 취급)"""
        order = self.order_repo.find_fresh(order_id)
        if not order or (user_id is not None and order.user_id != user_id):
            raise OrderNotFoundError(details={"order_id": order_id})
        return order

    def list_orders(
        self,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> OrderListResponse:
        limit = min(limit, 100)
        orders = self.order_repo.list_orders(user_id, status, limit, offset)
        total = self.order_repo.count_orders(user_id, status)
        return OrderListResponse(
            orders=orders, total_count=total, has_next=offset + len(orders) < total
        )

    # ------------------------------------------------------------------
    # 상태 전이
    # ------------------------------------------------------------------

    def submit_proof(
        self,
        order_id: int,
        user_id: int,
        screenshot: Optional[str] = None,
        transaction_note: Optional[str] = None,
    ) -> OrderSchema:
        """결제 증빙 제출 (pending -> paid)"""
        order = self.get_order(order_id, user_id=user_id)
        if order.status != OrderStatus.PENDING.value:
            raise OrderAlreadyProcessedError(
                details={"order_id": order_id, "status": order.status}
            )

        with unit_of_work(self.db):
            updated = self.order_repo.transition(
                order_id,
                [OrderStatus.PENDING.value],
                OrderStatus.PAID.value,
                payment_screenshot=screenshot,
                transaction_note=transaction_note,
            )
            if updated != 1:
                raise OrderAlreadyProcessedError(details={"order_id": order_id})

        logger.info(f"User {user_id} submitted payment proof for order {order.order_no}")
        return self.order_repo.find_fresh(order_id)

    def approve_order(self, order_id: int, reviewer_id: int) -> ApproveOrderResponse:
        """
        주문 승인 - 정확히 한 번만 성공

        같은 주문에 대한 동시 승인 요청 중 조건부 UPDATE 에서 1행을 얻은
        요청만 적립/활성화/수수료 분배로 진행한다.
        """
        order = self.order_repo.find_fresh(order_id)
        if not order:
            raise OrderNotFoundError(details={"order_id": order_id})
        if order.status not in OPEN_STATUSES:
            raise OrderAlreadyProcessedError(
                details={"order_id": order_id, "status": order.status}
            )

        reference = {"order_id": order.id, "order_no": order.order_no}

        with unit_of_work(self.db):
            updated = self.order_repo.transition(
                order_id,
                OPEN_STATUSES,
                OrderStatus.APPROVED.value,
                reviewed_by=reviewer_id,
                reviewed_at=datetime.now(timezone.utc),
            )
            if updated != 1:
                logger.warning(f"Order {order.order_no} was processed concurrently")
                raise OrderAlreadyProcessedError(details={"order_id": order_id})

            if order.item_type == ItemType.COIN_PACKAGE.value:
                self.coin_service.credit(
                    order.user_id,
                    order.coins,
                    TransactionType.RECHARGE.value,
                    description=f"Recharge order {order.order_no}",
                    metadata=reference,
                    commit=False,
                )
            else:
                self.membership_service.activate(
                    order.user_id,
                    order.member_level,
                    order.duration_days,
                    commit=False,
                )

            self.commission_service.distribute_commission(
                order.user_id,
                order.amount,
                explicit_agent_id=order.agent_id,
                metadata=reference,
                commit=False,
            )

        logger.info(f"Reviewer {reviewer_id} approved order {order.order_no}")
        return ApproveOrderResponse(order=self.order_repo.find_fresh(order_id), credited=True)

    def reject_order(self, order_id: int, reviewer_id: int, reason: str = "") -> RejectOrderResponse:
        """주문 반려 - 조건부 DELETE 로 행을 지운다"""
        order = self.order_repo.find_fresh(order_id)
        if not order:
            raise OrderNotFoundError(details={"order_id": order_id})
        if order.status not in OPEN_STATUSES:
            raise OrderAlreadyProcessedError(
                details={"order_id": order_id, "status": order.status}
            )

        with unit_of_work(self.db):
            deleted = self.order_repo.delete_if_status(order_id, OPEN_STATUSES)
            if deleted != 1:
                raise OrderAlreadyProcessedError(details={"order_id": order_id})

        logger.info(
            f"Reviewer {reviewer_id} rejected order {order.order_no}: {reason or '-'}"
        )
        return RejectOrderResponse(deleted=True)
