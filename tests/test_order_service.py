from datetime import datetime, timedelta, timezone

import pytest

from ledgerapi.core.exceptions import (
    DuplicatePendingOrderError,
    InvalidPackageError,
    OrderAlreadyProcessedError,
    OrderNotFoundError,
    PlanNotFoundError,
)
from ledgerapi.models import LedgerEntry, Order, User
from ledgerapi.repositories.order_repository import OrderRepository
from ledgerapi.services.coin_service import CoinService
from ledgerapi.services.order_service import OrderService, generate_order_no, generate_remark_code


@pytest.fixture
def order_service(db):
    return OrderService(db)


def coins(db, user_id):
    return CoinService(db).get_balance(user_id).balance


class TestOrderNumbers:
    def test_order_no_format(self):
        order_no = generate_order_no("coin_package")

        assert order_no.startswith("C")
        assert order_no[1:14].isdigit()
        assert len(order_no) == 1 + 13 + 6
        assert generate_order_no("membership_plan").startswith("M")

    def test_remark_code_is_four_digits(self):
        code = generate_remark_code()

        assert len(code) == 4
        assert code.isdigit()


class TestCreateOrder:
    """주문 생성"""

    def test_create_coin_order_snapshots_package(self, order_service, make_user):
        user_id = make_user()

        order = order_service.create_coin_order(user_id, "coins_500", payment_type="alipay")

        assert order.status == "pending"
        assert order.item_type == "coin_package"
        assert order.coins == 550  # 500 + 보너스 50
        assert order.amount == 5000
        assert len(order.remark_code) == 4

    def test_unknown_package_is_rejected(self, order_service, make_user):
        user_id = make_user()

        with pytest.raises(InvalidPackageError):
            order_service.create_coin_order(user_id, "coins_999")

    def test_price_mismatch_is_rejected(self, order_service, make_user):
        user_id = make_user()

        with pytest.raises(InvalidPackageError):
            order_service.create_coin_order(user_id, "coins_100", expected_price=1)

    def test_duplicate_pending_order(self, order_service, make_user):
        user_id = make_user()
        order_service.create_coin_order(user_id, "coins_100")

        with pytest.raises(DuplicatePendingOrderError):
            order_service.create_coin_order(user_id, "coins_100")

        # 다른 상품은 허용
        order_service.create_coin_order(user_id, "coins_500")

    def test_partial_unique_index_backstops_duplicate(self, db, order_service, make_user, monkeypatch):
        user_id = make_user()
        order_service.create_coin_order(user_id, "coins_100")
        monkeypatch.setattr(OrderRepository, "has_pending_order", lambda self, *args: False)

        with pytest.raises(DuplicatePendingOrderError):
            order_service.create_coin_order(user_id, "coins_100")

        assert db.query(Order).count() == 1

    def test_membership_order_requires_enabled_plan(self, order_service, make_user, vip_plan):
        user_id = make_user()

        order = order_service.create_membership_order(user_id, vip_plan.id)

        assert order.item_type == "membership_plan"
        assert order.member_level == "vip"
        assert order.duration_days == 30
        assert order.amount == 1500
        with pytest.raises(PlanNotFoundError):
            order_service.create_membership_order(user_id, 12345)


class TestSubmitProof:
    """결제 증빙 제출"""

    def test_pending_to_paid(self, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_100")

        paid = order_service.submit_proof(order.id, user_id, "https://img/1.png", "tx-1")

        assert paid.status == "paid"
        assert paid.payment_screenshot == "https://img/1.png"
        assert paid.transaction_note == "tx-1"

    def test_second_submission_is_rejected(self, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_100")
        order_service.submit_proof(order.id, user_id, "a.png")

        with pytest.raises(OrderAlreadyProcessedError):
            order_service.submit_proof(order.id, user_id, "b.png")

    def test_foreign_order_is_not_found(self, order_service, make_user):
        owner = make_user("owner")
        stranger = make_user("stranger")
        order = order_service.create_coin_order(owner, "coins_100")

        with pytest.raises(OrderNotFoundError):
            order_service.submit_proof(order.id, stranger, "x.png")


class TestApproveOrder:
    """주문 승인 - 정확히 한 번"""

    def test_approve_credits_coins(self, db, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_1000")
        order_service.submit_proof(order.id, user_id, "proof.png")

        result = order_service.approve_order(order.id, reviewer_id=99)

        assert result.credited is True
        assert result.order.status == "approved"
        assert result.order.reviewed_by == 99
        assert coins(db, user_id) == 1150
        entry = db.query(LedgerEntry).filter_by(user_id=user_id).one()
        assert entry.type == "recharge"
        assert entry.extra["order_no"] == order.order_no

    def test_pending_order_can_be_approved_directly(self, db, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_100")

        order_service.approve_order(order.id, reviewer_id=1)

        assert coins(db, user_id) == 100

    def test_second_approval_does_not_credit_again(self, db, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_100")
        order_service.approve_order(order.id, reviewer_id=1)

        with pytest.raises(OrderAlreadyProcessedError):
            order_service.approve_order(order.id, reviewer_id=2)

        assert coins(db, user_id) == 100
        assert db.query(LedgerEntry).filter_by(user_id=user_id).count() == 1

    def test_concurrent_approval_credits_once(self, db, order_service, make_user, monkeypatch):
        """사전 조회는 pending 으로 보였지만 다른 승인이 먼저 커밋된 경우"""
        user_id = make_user()
        stale = order_service.create_coin_order(user_id, "coins_100")
        order_service.approve_order(stale.id, reviewer_id=1)
        monkeypatch.setattr(order_service.order_repo, "find_fresh", lambda order_id: stale)

        with pytest.raises(OrderAlreadyProcessedError):
            order_service.approve_order(stale.id, reviewer_id=2)

        recharges = db.query(LedgerEntry).filter_by(user_id=user_id, type="recharge").all()
        assert len(recharges) == 1
        assert coins(db, user_id) == 100
        order = db.query(Order).populate_existing().filter_by(id=stale.id).one()
        assert order.reviewed_by == 1

    def test_missing_order(self, order_service):
        with pytest.raises(OrderNotFoundError):
            order_service.approve_order(404, reviewer_id=1)

    def test_approval_distributes_commission(self, db, order_service, make_user, make_agent):
        agent = make_agent(make_user("agent"), commission_rate=1000)
        buyer = make_user("buyer", referred_by=agent)
        order = order_service.create_coin_order(buyer, "coins_500")

        order_service.approve_order(order.id, reviewer_id=1)

        assert CoinService(db).get_balance(agent, "commission").balance == 500

    def test_approve_membership_activates_and_stacks(self, db, order_service, make_user, vip_plan):
        user_id = make_user()
        before = datetime.now(timezone.utc)

        first = order_service.create_membership_order(user_id, vip_plan.id)
        order_service.approve_order(first.id, reviewer_id=1)
        second = order_service.create_membership_order(user_id, vip_plan.id)
        order_service.approve_order(second.id, reviewer_id=1)

        user = db.query(User).populate_existing().filter_by(id=user_id).one()
        expiry = user.member_expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        assert user.member_level == "vip"
        assert expiry - before >= timedelta(days=60)
        assert expiry - before < timedelta(days=60, minutes=5)


class TestRejectOrder:
    """주문 반려 - 행 삭제"""

    def test_reject_deletes_order(self, db, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_100")

        result = order_service.reject_order(order.id, reviewer_id=1, reason="no payment")

        assert result.deleted is True
        assert db.query(Order).count() == 0
        with pytest.raises(OrderNotFoundError):
            order_service.get_order(order.id)

        # 반려 후 같은 상품으로 다시 주문 가능
        order_service.create_coin_order(user_id, "coins_100")

    def test_cannot_reject_approved_order(self, order_service, make_user):
        user_id = make_user()
        order = order_service.create_coin_order(user_id, "coins_100")
        order_service.approve_order(order.id, reviewer_id=1)

        with pytest.raises(OrderAlreadyProcessedError):
            order_service.reject_order(order.id, reviewer_id=1)
