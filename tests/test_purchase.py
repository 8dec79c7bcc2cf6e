"""Plan purchase: debit split, investment creation, commissions and rank."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func

from models import Investment, InvestmentStatus, Rank, Transaction, TransactionType, User, WalletType
from ledger.exceptions import InsufficientFunds, PlanNotFound, WalletMissing
from ledger.purchase import InvestmentPurchaseEngine, split_debit
from conftest import wallet_of


def purchase_rows(session, wallet_id):
    return (
        session.query(Transaction)
        .filter_by(wallet_id=wallet_id, type=TransactionType.PLAN_PURCHASE.value)
        .order_by(Transaction.id)
        .all()
    )


class TestSplitDebit:

    def test_referral_first(self):
        assert split_debit(Decimal("100"), Decimal("30"), Decimal("500")) == (Decimal("30"), Decimal("70"))

    def test_referral_covers_everything(self):
        assert split_debit(Decimal("100"), Decimal("250"), Decimal("0")) == (Decimal("100"), Decimal("0"))

    def test_not_enough_in_total(self):
        with pytest.raises(InsufficientFunds):
            split_debit(Decimal("100"), Decimal("40"), Decimal("59.99"))


class TestInvestmentPurchase:

    def test_rows_sum_to_minus_price_and_referral_drained_first(self, session, make_user, make_plan):
        buyer = make_user("Gabi", balance="500", referral_balance="30")
        plan = make_plan(price="100.00")

        InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

        wallet = wallet_of(session, buyer)
        assert wallet.referral_balance == Decimal("0")
        assert wallet.balance == Decimal("430")

        rows = purchase_rows(session, wallet.id)
        assert [(r.wallet_type, r.amount) for r in rows] == [
            (WalletType.REFERRAL.value, Decimal("-30")),
            (WalletType.BALANCE.value, Decimal("-70")),
        ]
        assert sum(r.amount for r in rows) == Decimal("-100")
        assert all(r.description == f"Compra do plano {plan.name}" for r in rows)

    def test_single_row_when_one_part_is_zero(self, session, make_user, make_plan):
        buyer = make_user("Hugo", balance="1000")
        plan = make_plan(price="300.00")

        InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

        rows = purchase_rows(session, wallet_of(session, buyer).id)
        assert len(rows) == 1
        assert rows[0].amount == Decimal("-300")

    def test_investment_is_active_and_expires_in_business_days(self, session, make_user, make_plan):
        buyer = make_user("Iara", balance="100")
        plan = make_plan(price="100.00", duration_days=1)
        friday = datetime(2024, 1, 5, 10, 0)

        investment = InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id, now=friday)

        assert investment.status == InvestmentStatus.ACTIVE.value
        assert investment.start_date == friday
        assert investment.expires_at == datetime(2024, 1, 8, 10, 0)

    def test_commissions_paid_to_upline(self, session, make_user, make_plan):
        sponsor = make_user("Sponsor")
        buyer = make_user("João", referrer=sponsor, balance="1000")
        plan = make_plan(price="1000.00")

        InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

        assert wallet_of(session, sponsor).referral_balance == Decimal("100")

    def test_insufficient_funds_changes_nothing(self, session, make_user, make_plan):
        buyer = make_user("Kauã", balance="50", referral_balance="49.99")
        plan = make_plan(price="100.00")

        with pytest.raises(InsufficientFunds):
            InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

        wallet = wallet_of(session, buyer)
        assert wallet.balance == Decimal("50")
        assert wallet.referral_balance == Decimal("49.99")
        assert session.query(Investment).count() == 0
        assert session.query(Transaction).count() == 0

    def test_unknown_plan(self, session, make_user):
        buyer = make_user("Lia", balance="100")
        with pytest.raises(PlanNotFound):
            InvestmentPurchaseEngine(session).purchase(buyer.id, 424242)

    def test_inactive_plan(self, session, make_user, make_plan):
        buyer = make_user("Malu", balance="100")
        plan = make_plan(price="100.00", active=False)
        with pytest.raises(PlanNotFound):
            InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

    def test_buyer_without_wallet(self, session, make_user, make_plan):
        buyer = make_user("Nina", with_wallet=False)
        plan = make_plan(price="100.00")
        with pytest.raises(WalletMissing):
            InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

    def test_rank_recomputed_after_purchase(self, session, make_user, make_plan):
        buyer = make_user("Otto", balance="300")
        plan = make_plan(price="300.00")

        InvestmentPurchaseEngine(session).purchase(buyer.id, plan.id)

        session.expire_all()
        assert session.get(User, buyer.id).rank == Rank.BRONZE.value

    def test_failure_inside_cascade_rolls_back_everything(self, session, make_user, make_plan):
        sponsor = make_user("Pai")
        buyer = make_user("Quim", referrer=sponsor, balance="100")
        plan = make_plan(price="100.00")

        class ExplodingCascade:
            def distribute(self, buyer, base_amount):
                raise RuntimeError("boom")

        engine = InvestmentPurchaseEngine(session, cascade=ExplodingCascade())
        with pytest.raises(RuntimeError):
            engine.purchase(buyer.id, plan.id)

        assert wallet_of(session, buyer).balance == Decimal("100")
        assert session.query(Investment).count() == 0
        assert session.query(func.count(Transaction.id)).scalar() == 0
