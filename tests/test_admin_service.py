from decimal import Decimal

import pytest

from admin import service
from core.constants import MembershipStatus, TransactionStatus
from core.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from core.models import Membership
from transactions import ledger
from users import accounts


class TestApproveDeposit:

    def test_credits_balance(self, db, make_user):
        user = make_user("alice", {"BTC": "0.5"})
        txn = ledger.create_deposit(db, user, "BTC", "0.25")

        result = service.approve_deposit(db, txn.id)

        assert result["outcome"] == "credited"
        assert result["transaction"].status == TransactionStatus.CONFIRMED
        assert accounts.get_balance(db, user.id, "BTC") == Decimal("0.75")

    def test_second_approval_does_not_double_credit(self, db, make_user):
        user = make_user("alice")
        txn = ledger.create_deposit(db, user, "ETH", 2)

        service.approve_deposit(db, txn.id)
        again = service.approve_deposit(db, txn.id)

        assert again["outcome"] == "already_confirmed"
        assert accounts.get_balance(db, user.id, "ETH") == Decimal("2")

    def test_recognized_tier_activates_membership_instead_of_credit(self, db, make_user):
        user = make_user("alice")
        txn = ledger.create_deposit(db, user, "USDT", 100, membership_tier="V1")

        result = service.approve_deposit(db, txn.id)

        membership = result["membership"]
        assert result["outcome"] == "membership_activated"
        assert membership.status == MembershipStatus.ACTIVE
        assert membership.tier == "V1"
        assert membership.duration_days == 5
        assert membership.daily_amount == Decimal("10")
        assert membership.bonus_amount == Decimal("50")
        assert membership.days_paid == 0
        assert accounts.get_balance(db, user.id, "USDT") == 0

        db.refresh(user)
        assert user.active_membership_id == membership.id
        assert result["transaction"].meta["membershipId"] == membership.id

    def test_unknown_tier_falls_back_to_plain_credit(self, db, make_user):
        user = make_user("alice")
        txn = ledger.create_deposit(db, user, "USDT", 100, membership_tier="GOLD")

        result = service.approve_deposit(db, txn.id)

        assert result["outcome"] == "credited"
        assert result["membership"] is None
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("100")
        assert db.query(Membership).count() == 0

    def test_second_membership_purchase_falls_back_to_credit(self, db, make_user):
        user = make_user("alice")
        first = ledger.create_deposit(db, user, "USDT", 100, membership_tier="V1")
        second = ledger.create_deposit(db, user, "USDT", 250, membership_tier="V2")

        service.approve_deposit(db, first.id)
        result = service.approve_deposit(db, second.id)

        assert result["outcome"] == "credited"
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("250")
        assert db.query(Membership).count() == 1

    def test_tier_request_rejected_while_membership_active(self, db, make_user):
        user = make_user("alice")
        txn = ledger.create_deposit(db, user, "USDT", 100, membership_tier="V1")
        service.approve_deposit(db, txn.id)

        with pytest.raises(ValidationError):
            ledger.create_deposit(db, user, "USDT", 100, membership_tier="V3")

    def test_declined_deposit_cannot_be_approved(self, db, make_user):
        user = make_user("alice")
        txn = ledger.create_deposit(db, user, "BTC", 1)
        service.decline_transaction(db, txn.id)

        with pytest.raises(ValidationError):
            service.approve_deposit(db, txn.id)
        assert accounts.get_balance(db, user.id, "BTC") == 0

    def test_withdraw_is_not_a_deposit(self, db, make_user):
        user = make_user("alice", {"BTC": 1})
        txn = ledger.create_withdraw(db, user, "BTC", 1)

        with pytest.raises(ValidationError):
            service.approve_deposit(db, txn.id)

    def test_missing_transaction(self, db):
        with pytest.raises(NotFoundError):
            service.approve_deposit(db, "nope")


class TestApproveWithdraw:

    def test_deducts_and_attaches_hash(self, db, make_user):
        user = make_user("alice", {"USDT": 100})
        txn = ledger.create_withdraw(db, user, "USDT", 40, address="TXabc")

        result = service.approve_withdraw(db, txn.id, "0xhash")

        confirmed = result["transaction"]
        assert confirmed.status == TransactionStatus.CONFIRMED
        assert confirmed.meta["txHash"] == "0xhash"
        assert confirmed.meta["address"] == "TXabc"
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("60")

    def test_balance_rechecked_at_approval(self, db, make_user):
        user = make_user("alice", {"USDT": 100})
        txn = ledger.create_withdraw(db, user, "USDT", 80)
        # funds leave through another path before the admin gets to it
        accounts.debit(db, user.id, "USDT", Decimal("50"))
        db.commit()

        with pytest.raises(InsufficientBalanceError):
            service.approve_withdraw(db, txn.id, "0xhash")

        db.refresh(txn)
        assert txn.status == TransactionStatus.DECLINED
        assert "txHash" not in txn.meta
        assert txn.meta["declineReason"]
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("50")

    def test_fractional_withdrawals_drain_balance_exactly(self, db, make_user):
        user = make_user("alice", {"BTC": "0.3"})

        first = ledger.create_withdraw(db, user, "BTC", "0.1")
        service.approve_withdraw(db, first.id, "0xa")
        second = ledger.create_withdraw(db, user, "BTC", "0.2")
        result = service.approve_withdraw(db, second.id, "0xb")

        assert result["transaction"].status == TransactionStatus.CONFIRMED
        assert accounts.get_balance(db, user.id, "BTC") == 0

    def test_idempotent(self, db, make_user):
        user = make_user("alice", {"USDT": 100})
        txn = ledger.create_withdraw(db, user, "USDT", 40)

        service.approve_withdraw(db, txn.id, "0x1")
        again = service.approve_withdraw(db, txn.id, "0x2")

        assert again["outcome"] == "already_confirmed"
        assert again["transaction"].meta["txHash"] == "0x1"
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("60")


class TestDecline:

    def test_decline_pending_leaves_balance(self, db, make_user):
        user = make_user("alice", {"USDT": 100})
        txn = ledger.create_withdraw(db, user, "USDT", 40)

        result = service.decline_transaction(db, txn.id, "suspicious address")

        assert result["transaction"].status == TransactionStatus.DECLINED
        assert result["transaction"].meta["declineReason"] == "suspicious address"
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("100")

    def test_decline_twice_is_a_no_op(self, db, make_user):
        user = make_user("alice")
        txn = ledger.create_deposit(db, user, "BTC", 1)

        service.decline_transaction(db, txn.id)
        again = service.decline_transaction(db, txn.id)

        assert again["outcome"] == "already_declined"

    def test_confirmed_transaction_cannot_be_declined(self, db, make_user):
        user = make_user("alice", {"USDT": 100})
        txn = ledger.create_withdraw(db, user, "USDT", 40)
        service.approve_withdraw(db, txn.id, "0xhash")

        with pytest.raises(ValidationError):
            service.decline_transaction(db, txn.id)

        # no reversal of the deduction
        assert accounts.get_balance(db, user.id, "USDT") == Decimal("60")


class TestListings:

    def test_pending_queues(self, db, make_user):
        user = make_user("alice", {"BTC": 2})
        deposit = ledger.create_deposit(db, user, "BTC", 1)
        withdraw = ledger.create_withdraw(db, user, "BTC", 1)
        done = ledger.create_deposit(db, user, "ETH", 1)
        service.approve_deposit(db, done.id)

        assert [t.id for t in service.list_pending(db, "DEPOSIT")] == [deposit.id]
        assert [t.id for t in service.list_pending(db, "WITHDRAW")] == [withdraw.id]

    def test_list_users_includes_balances(self, db, make_user):
        make_user("alice", {"BTC": 2})

        users = service.list_users(db)

        assert users[0]["username"] == "alice"
        assert users[0]["balances"]["BTC"] == 2.0
