import pytest

from ledgerapi.core.exceptions import (
    ImmutableLedgerError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransactionTypeError,
)
from ledgerapi.models import AccountBalance, LedgerEntry
from ledgerapi.repositories.balance_repository import BalanceRepository
from ledgerapi.repositories.ledger_repository import LedgerRepository
from ledgerapi.services.coin_service import CoinService


@pytest.fixture
def coin_service(db):
    return CoinService(db)


def ledger_count(db, user_id, book="coins"):
    return db.query(LedgerEntry).filter_by(user_id=user_id, book=book).count()


class TestCreditDebit:
    """적립/차감 기본 동작"""

    def test_credit_creates_balance_and_entry(self, db, coin_service, make_user):
        user_id = make_user()

        result = coin_service.credit(user_id, 100, "recharge", "first recharge", {"order_id": 1})

        assert result.new_balance == 100
        assert result.entry.amount == 100
        assert result.entry.balance_after == 100
        assert result.entry.type == "recharge"
        assert result.entry.metadata == {"order_id": 1}
        assert coin_service.get_balance(user_id).total_earned == 100

    def test_debit_records_negative_amount(self, db, coin_service, make_user):
        user_id = make_user()
        coin_service.credit(user_id, 100, "checkin")

        result = coin_service.debit(user_id, 30, "consume", "unlock video")

        assert result.new_balance == 70
        assert result.entry.amount == -30
        assert result.entry.balance_after == 70
        balance = coin_service.get_balance(user_id)
        assert balance.total_spent == 30

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_is_rejected(self, coin_service, make_user, amount):
        user_id = make_user()

        with pytest.raises(InvalidAmountError):
            coin_service.credit(user_id, amount, "recharge")
        with pytest.raises(InvalidAmountError):
            coin_service.debit(user_id, amount, "consume")

    @pytest.mark.parametrize("amount", [1.5, 10.0, "10", True])
    def test_non_integer_amount_is_rejected(self, db, coin_service, make_user, amount):
        user_id = make_user()

        with pytest.raises(InvalidAmountError):
            coin_service.credit(user_id, amount, "recharge")
        with pytest.raises(InvalidAmountError):
            coin_service.adjust(user_id, amount, admin_id=1, note="x")

        assert ledger_count(db, user_id) == 0
        assert db.query(AccountBalance).filter_by(user_id=user_id).count() == 0

    def test_unknown_transaction_type_is_rejected(self, db, coin_service, make_user):
        user_id = make_user()
        coin_service.credit(user_id, 20, "checkin")

        with pytest.raises(InvalidTransactionTypeError) as exc_info:
            coin_service.credit(user_id, 10, "free_money")
        with pytest.raises(InvalidTransactionTypeError):
            coin_service.debit(user_id, 10, "withdraw")

        assert exc_info.value.error_code == "INVALID_TRANSACTION_TYPE"
        assert coin_service.get_balance(user_id).balance == 20
        assert ledger_count(db, user_id) == 1

    def test_insufficient_balance_changes_nothing(self, db, coin_service, make_user):
        user_id = make_user()
        coin_service.credit(user_id, 50, "checkin")

        with pytest.raises(InsufficientBalanceError) as exc_info:
            coin_service.debit(user_id, 51, "consume")

        assert exc_info.value.error_code == "INSUFFICIENT_BALANCE"
        assert exc_info.value.details["available"] == 50
        assert coin_service.get_balance(user_id).balance == 50
        assert ledger_count(db, user_id) == 1

    def test_books_are_independent(self, coin_service, make_user):
        user_id = make_user()
        coin_service.credit(user_id, 100, "recharge")
        coin_service.credit(user_id, 7, "commission", book="commission")

        assert coin_service.get_balance(user_id).balance == 100
        assert coin_service.get_balance(user_id, "commission").balance == 7
        with pytest.raises(InsufficientBalanceError):
            coin_service.debit(user_id, 8, "settlement", book="commission")


class TestBalanceRepository:
    """잔액 저장소 단일 UPDATE 경로"""

    def test_get_or_create_is_idempotent(self, db, make_user):
        user_id = make_user()
        repo = BalanceRepository(db)

        first = repo.get_or_create(user_id)
        second = repo.get_or_create(user_id)
        db.commit()

        assert first.id == second.id
        assert len(repo.list_accounts("coins")) == 1

    def test_increment_refuses_to_go_negative(self, db, make_user):
        user_id = make_user()
        repo = BalanceRepository(db)
        repo.get_or_create(user_id)
        repo.increment(user_id, 10)

        with pytest.raises(InsufficientBalanceError):
            repo.increment(user_id, -11)

        assert repo.get_balance(user_id) == 10


class TestAdjust:
    """관리자 조정"""

    def test_adjust_records_admin_and_note(self, coin_service, make_user):
        user_id = make_user()

        result = coin_service.adjust(user_id, 200, admin_id=99, note="compensation")

        assert result.new_balance == 200
        assert result.entry.type == "adjust"
        assert result.entry.metadata["admin_id"] == 99
        assert result.entry.metadata["note"] == "compensation"

    def test_zero_adjust_is_invalid(self, coin_service, make_user):
        user_id = make_user()

        with pytest.raises(InvalidAmountError):
            coin_service.adjust(user_id, 0, admin_id=99, note="noop")

    def test_negative_adjust_cannot_overdraw(self, coin_service, make_user):
        user_id = make_user()
        coin_service.credit(user_id, 10, "checkin")

        with pytest.raises(InsufficientBalanceError):
            coin_service.adjust(user_id, -20, admin_id=99, note="clawback")

    def test_batch_adjust_applies_to_everyone(self, coin_service, make_user):
        users = [make_user(f"u{i}") for i in range(3)]

        result = coin_service.batch_adjust(users, 25, admin_id=1, note="event")

        assert result.affected_count == 3
        assert len(result.entries) == 3
        assert all(coin_service.get_balance(u).balance == 25 for u in users)

    def test_batch_adjust_is_all_or_nothing(self, db, coin_service, make_user):
        rich = make_user("rich")
        poor = make_user("poor")
        coin_service.credit(rich, 100, "recharge")

        with pytest.raises(InsufficientBalanceError):
            coin_service.batch_adjust([rich, poor], -50, admin_id=1, note="clawback")

        assert coin_service.get_balance(rich).balance == 100
        assert coin_service.get_balance(poor).balance == 0
        assert ledger_count(db, rich) == 1
        assert ledger_count(db, poor) == 0


class TestLedgerQueries:
    """원장 조회 / 대사"""

    def test_ledger_is_newest_first_and_paginated(self, coin_service, make_user):
        user_id = make_user()
        for amount in (10, 20, 30):
            coin_service.credit(user_id, amount, "checkin")

        page = coin_service.get_ledger(user_id, limit=2)

        assert page.balance == 60
        assert page.total_count == 3
        assert page.has_next is True
        assert [e.amount for e in page.entries] == [30, 20]

        last = coin_service.get_ledger(user_id, limit=2, offset=2)
        assert [e.amount for e in last.entries] == [10]
        assert last.has_next is False

    def test_balance_reconciles_with_ledger(self, coin_service, make_user):
        user_id = make_user()
        coin_service.credit(user_id, 100, "recharge")
        coin_service.debit(user_id, 40, "consume")
        coin_service.adjust(user_id, -10, admin_id=1, note="fix")
        with pytest.raises(InsufficientBalanceError):
            coin_service.debit(user_id, 1000, "consume")

        check = coin_service.verify_integrity(user_id)

        assert check.status == "OK"
        assert check.stored_balance == check.ledger_sum == check.last_balance_after == 50
        assert check.entry_count == 3

    def test_global_integrity(self, coin_service, make_user):
        a = make_user("a")
        b = make_user("b")
        coin_service.credit(a, 10, "checkin")
        coin_service.credit(b, 15, "checkin")
        coin_service.debit(b, 5, "consume")

        check = coin_service.verify_global_integrity()

        assert check.status == "OK"
        assert check.stored_balance == 20
        assert check.account_count == 2


class TestLedgerImmutability:
    """원장은 추가만 가능"""

    def test_entries_cannot_be_updated(self, db, coin_service, make_user):
        user_id = make_user()
        entry = coin_service.credit(user_id, 100, "recharge").entry

        with pytest.raises(ImmutableLedgerError):
            LedgerRepository(db).update(entry.id, commit=True, amount=999)

        stored = db.query(LedgerEntry).populate_existing().filter_by(id=entry.id).one()
        assert stored.amount == 100
        assert coin_service.verify_integrity(user_id).status == "OK"
