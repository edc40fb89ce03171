import pytest

from ledgerapi.models import AgentMonthlyRecord, LedgerEntry, User
from ledgerapi.services.coin_service import CoinService
from ledgerapi.services.referral_service import ReferralService


@pytest.fixture
def referral_service(db):
    return ReferralService(db)


def coins(db, user_id):
    return CoinService(db).get_balance(user_id).balance


class TestProcessReferral:
    """초대 코드 처리"""

    def test_links_and_rewards_both_sides(self, db, referral_service, make_user):
        inviter = make_user("inviter", referral_code="INV001")
        invitee = make_user("invitee")

        assert referral_service.process_referral(invitee, "INV001") is True

        user = db.query(User).populate_existing().filter_by(id=invitee).one()
        assert user.referred_by == inviter
        assert coins(db, inviter) == 50
        assert coins(db, invitee) == 10
        types = {e.type for e in db.query(LedgerEntry).all()}
        assert types == {"promotion"}

    def test_second_code_is_ignored(self, db, referral_service, make_user):
        first = make_user("first", referral_code="FIRST1")
        make_user("second", referral_code="SECND2")
        invitee = make_user("invitee")
        referral_service.process_referral(invitee, "FIRST1")

        assert referral_service.process_referral(invitee, "SECND2") is False

        user = db.query(User).populate_existing().filter_by(id=invitee).one()
        assert user.referred_by == first
        assert coins(db, invitee) == 10

    def test_own_code_is_ignored(self, db, referral_service, make_user):
        user_id = make_user("self", referral_code="SELF01")

        assert referral_service.process_referral(user_id, "SELF01") is False
        assert coins(db, user_id) == 0

    @pytest.mark.parametrize("code", [None, "", "NOPE99"])
    def test_missing_or_unknown_code(self, referral_service, make_user, code):
        assert referral_service.process_referral(make_user(), code) is False

    def test_agent_code_counts_recruit(self, db, referral_service, make_user, make_agent):
        agent = make_agent(make_user("agent"))
        invitee = make_user("invitee")

        assert referral_service.process_referral(invitee, f"A{agent:07d}") is True

        record = db.query(AgentMonthlyRecord).filter_by(user_id=agent).one()
        assert record.recruit_count == 1
        assert coins(db, agent) == 50

    def test_disabled_agent_code_does_not_resolve(self, referral_service, make_user, make_agent):
        agent = make_agent(make_user("agent"), status="disabled")

        assert referral_service.resolve_inviter(f"A{agent:07d}") is None


class TestReferralStats:
    def test_stats(self, referral_service, make_user):
        inviter = make_user("inviter", referral_code="INV002")
        for i in range(3):
            referral_service.process_referral(make_user(f"u{i}"), "INV002")

        stats = referral_service.get_referral_stats(inviter)

        assert stats.invite_count == 3
        assert stats.total_income == 150

    def test_generated_code_shape(self, referral_service):
        code = referral_service.generate_referral_code()

        assert len(code) == 6
        assert code.isalnum() and code.upper() == code
