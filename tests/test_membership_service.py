from datetime import datetime, timedelta, timezone

import pytest

from ledgerapi.core.exceptions import InsufficientBalanceError, PlanNotFoundError
from ledgerapi.models import LedgerEntry, MembershipPlan, User
from ledgerapi.services.coin_service import CoinService
from ledgerapi.services.membership_service import MembershipService, calculate_new_expiry

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestCalculateNewExpiry:
    def test_no_membership_starts_now(self):
        assert calculate_new_expiry(None, 30, now=NOW) == NOW + timedelta(days=30)

    def test_active_membership_is_extended(self):
        current = NOW + timedelta(days=10)

        assert calculate_new_expiry(current, 30, now=NOW) == current + timedelta(days=30)

    def test_expired_membership_restarts(self):
        current = NOW - timedelta(days=5)

        assert calculate_new_expiry(current, 7, now=NOW) == NOW + timedelta(days=7)

    def test_naive_expiry_is_treated_as_utc(self):
        current = (NOW + timedelta(days=1)).replace(tzinfo=None)

        assert calculate_new_expiry(current, 1, now=NOW) == NOW + timedelta(days=2)


class TestExchange:
    """코인으로 멤버십 교환"""

    def test_insufficient_coins_changes_nothing(self, db, make_user, vip_plan):
        user_id = make_user()
        CoinService(db).credit(user_id, 100, "recharge")

        with pytest.raises(InsufficientBalanceError):
            MembershipService(db).exchange_coins_for_membership(user_id, vip_plan.id)

        user = db.query(User).populate_existing().filter_by(id=user_id).one()
        assert user.member_level == "free"
        assert CoinService(db).get_balance(user_id).balance == 100
        assert db.query(LedgerEntry).count() == 1

    def test_exchange_debits_and_activates(self, db, make_user, vip_plan):
        user_id = make_user()
        CoinService(db).credit(user_id, 200, "recharge")

        result = MembershipService(db).exchange_coins_for_membership(user_id, vip_plan.id)

        assert result.coins_deducted == 150
        assert result.new_balance == 50
        assert result.activation.new_level == "vip"
        status = MembershipService(db).get_status(user_id)
        assert status.is_active is True
        assert status.days_remaining in (29, 30)

    def test_disabled_plan(self, db, make_user):
        plan = MembershipPlan(
            name="old", member_level="vip", duration_days=30, price=100, coin_price=10, enabled=False
        )
        db.add(plan)
        db.commit()

        with pytest.raises(PlanNotFoundError):
            MembershipService(db).exchange_coins_for_membership(make_user(), plan.id)

    def test_list_plans_only_enabled(self, db, vip_plan):
        db.add(MembershipPlan(name="off", member_level="svip", duration_days=1, price=1, enabled=False))
        db.commit()

        assert [p.id for p in MembershipService(db).list_plans()] == [vip_plan.id]
