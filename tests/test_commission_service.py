import pytest

from ledgerapi.models import (
    AgentLevel,
    AgentLevelChangeLog,
    AgentMonthlyRecord,
    AgentProfile,
    LedgerEntry,
)
from ledgerapi.schemas.agent import AgentProfileSchema
from ledgerapi.services.coin_service import CoinService
from ledgerapi.services.commission_service import CommissionService, calculate_shares
from ledgerapi.utils.timezone_utils import get_current_month


@pytest.fixture
def commission_service(db):
    return CommissionService(db)


@pytest.fixture
def chain(make_user, make_agent):
    """A(10%, 하위 6%) -> B(6%, 하위 4%) -> C(4%), 구매자는 C 의 추천"""
    a = make_agent(make_user("A"), commission_rate=1000, sub_agent_rate=600)
    b = make_agent(make_user("B"), commission_rate=600, sub_agent_rate=400, parent_agent_id=a)
    c = make_agent(make_user("C"), commission_rate=400, parent_agent_id=b)
    buyer = make_user("buyer", referred_by=c)
    return a, b, c, buyer


def commission_balance(db, user_id):
    return CoinService(db).get_balance(user_id, "commission").balance


def profile(user_id, commission_rate, sub_agent_rate=0, status="active", parent=None):
    return AgentProfileSchema(
        user_id=user_id,
        level_id=1,
        status=status,
        commission_rate=commission_rate,
        sub_agent_rate=sub_agent_rate,
        parent_agent_id=parent,
    )


class TestCalculateShares:
    """부작용 없는 몫 계산"""

    def test_let_benefit_split(self):
        shares = calculate_shares(
            [profile(3, 400), profile(2, 600, 400), profile(1, 1000, 600)], 10000
        )

        assert [(s.agent_id, s.rate, s.amount) for s in shares] == [
            (3, 400, 400),
            (2, 200, 200),
            (1, 400, 400),
        ]

    def test_disabled_agent_passes_through(self):
        shares = calculate_shares(
            [profile(3, 400), profile(2, 600, 400, status="disabled"), profile(1, 1000, 600)],
            10000,
        )

        assert [(s.agent_id, s.amount) for s in shares] == [(3, 400), (1, 600)]

    def test_disabled_direct_agent_passes_full_rate(self):
        shares = calculate_shares(
            [profile(2, 400, status="disabled"), profile(1, 1000, 400)], 10000
        )

        assert [(s.agent_id, s.rate, s.amount) for s in shares] == [(1, 1000, 1000)]

    def test_amount_is_floored(self):
        shares = calculate_shares([profile(1, 333)], 999)

        # 999 * 333 / 10000 = 33.2667
        assert shares[0].amount == 33


class TestDistributeCommission:
    """주문 1건 수수료 분배"""

    def test_three_level_conservation(self, db, commission_service, chain):
        a, b, c, buyer = chain

        result = commission_service.distribute_commission(buyer, 10000)

        assert commission_balance(db, c) == 400
        assert commission_balance(db, b) == 200
        assert commission_balance(db, a) == 400
        assert result.total_distributed == 1000
        entries = db.query(LedgerEntry).filter_by(book="commission", type="commission").all()
        assert sorted(e.amount for e in entries) == [200, 400, 400]

    def test_disabled_middle_agent_is_skipped(self, db, commission_service, chain):
        a, b, c, buyer = chain
        db.query(AgentProfile).filter_by(user_id=b).update({"status": "disabled"})
        db.commit()

        commission_service.distribute_commission(buyer, 10000)

        assert commission_balance(db, c) == 400
        assert commission_balance(db, b) == 0
        assert commission_balance(db, a) == 600
        assert db.query(LedgerEntry).filter_by(user_id=b).count() == 0

    def test_monthly_records_are_incremented(self, db, commission_service, chain):
        a, b, c, buyer = chain

        commission_service.distribute_commission(buyer, 10000)
        commission_service.distribute_commission(buyer, 5000)

        month = get_current_month()
        record = db.query(AgentMonthlyRecord).filter_by(user_id=c, month=month).one()
        assert record.total_sales == 15000
        assert record.commission_amount == 600
        assert record.total_earnings == 600
        top = db.query(AgentMonthlyRecord).filter_by(user_id=a, month=month).one()
        assert top.commission_amount == 600

    def test_no_referrer_is_noop(self, db, commission_service, make_user, levels):
        buyer = make_user("lonely")

        result = commission_service.distribute_commission(buyer, 10000)

        assert result.shares == []
        assert db.query(LedgerEntry).count() == 0

    def test_self_referral_is_ignored(self, db, commission_service, make_user, make_agent):
        agent = make_agent(make_user("self"))

        result = commission_service.distribute_commission(agent, 10000, explicit_agent_id=agent)

        assert result.shares == []
        assert commission_balance(db, agent) == 0

    def test_referrer_without_profile_is_noop(self, db, commission_service, make_user, levels):
        inviter = make_user("plain user")
        buyer = make_user("buyer", referred_by=inviter)

        result = commission_service.distribute_commission(buyer, 10000)

        assert result.shares == []

    def test_explicit_agent_overrides_referrer(self, db, commission_service, chain, make_user, make_agent):
        a, b, c, buyer = chain
        other = make_agent(make_user("other"), commission_rate=500)

        commission_service.distribute_commission(buyer, 10000, explicit_agent_id=other)

        assert commission_balance(db, other) == 500
        assert commission_balance(db, c) == 0

    def test_only_three_levels_are_paid(self, db, commission_service, make_user, make_agent):
        a = make_agent(make_user("A"), commission_rate=1000, sub_agent_rate=800)
        b = make_agent(make_user("B"), commission_rate=800, sub_agent_rate=600, parent_agent_id=a)
        c = make_agent(make_user("C"), commission_rate=600, sub_agent_rate=400, parent_agent_id=b)
        d = make_agent(make_user("D"), commission_rate=400, parent_agent_id=c)
        buyer = make_user("buyer", referred_by=d)

        result = commission_service.distribute_commission(buyer, 10000)

        assert [s.agent_id for s in result.shares] == [d, c, b]
        assert commission_balance(db, a) == 0
        assert result.total_distributed == 800


class TestAutoUpgradeAfterCommission:
    """수수료 분배 후 직접 추천인 자동 승급"""

    @pytest.fixture
    def levels(self, db):
        """승급 조건이 낮은 4단계 사다리 (conftest 의 levels 대체)"""
        rows = [
            AgentLevel(name="L0", sort_order=0, recruit_requirement=0, sales_requirement=0, commission_rate=1000),
            AgentLevel(name="L1", sort_order=1, recruit_requirement=1, sales_requirement=1000, commission_rate=1100),
            AgentLevel(name="L2", sort_order=2, recruit_requirement=1, sales_requirement=5000, commission_rate=1200),
            AgentLevel(name="L3", sort_order=3, recruit_requirement=5, sales_requirement=0, commission_rate=1300),
        ]
        db.add_all(rows)
        db.commit()
        return rows

    def test_multi_level_upgrade_writes_single_log(self, db, commission_service, levels, make_user, make_agent):
        agent = make_agent(make_user("agent"), level_id=levels[0].id)
        buyer = make_user("buyer", referred_by=agent)

        result = commission_service.distribute_commission(buyer, 10000)

        assert result.upgrade.upgraded is True
        assert result.upgrade.new_level == "L2"
        assert result.upgrade.levels_skipped == 1
        logs = db.query(AgentLevelChangeLog).filter_by(user_id=agent).all()
        assert len(logs) == 1
        assert logs[0].change_type == "auto_upgrade"
        assert logs[0].previous_level_name == "L0"
        assert logs[0].new_level_name == "L2"

        upgraded = commission_service.profile_repo.get(agent)
        assert upgraded.level_id == levels[2].id
        # 최상위 대리상은 새 등급의 비율로 동기화
        assert upgraded.commission_rate == 1200

    def test_unmet_requirement_keeps_level(self, db, commission_service, levels, make_user, make_agent):
        agent = make_agent(make_user("agent"), level_id=levels[0].id)
        buyer = make_user("buyer", referred_by=agent)

        result = commission_service.distribute_commission(buyer, 500)

        assert result.upgrade.upgraded is False
        assert db.query(AgentLevelChangeLog).count() == 0
