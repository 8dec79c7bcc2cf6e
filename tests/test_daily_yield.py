"""Daily yield batch job."""

from datetime import datetime, timedelta
from decimal import Decimal

from models import Investment, InvestmentStatus, Transaction, TransactionType
from ledger.daily_yield import DailyYieldProcessor, daily_yield_amount
from conftest import wallet_of


MONDAY = datetime(2024, 1, 8, 3, 0)
SATURDAY = datetime(2024, 1, 6, 3, 0)


def add_investment(session, user, plan, expires_at, status=InvestmentStatus.ACTIVE):
    investment = Investment(
        user_id=user.id,
        plan_id=plan.id,
        start_date=expires_at - timedelta(days=40),
        expires_at=expires_at,
        status=status.value,
    )
    session.add(investment)
    session.commit()
    return investment


def test_yield_amount_is_exact():
    assert daily_yield_amount(Decimal("300.00"), Decimal("1.10")) == Decimal("3.3")
    assert daily_yield_amount(Decimal("100.00"), Decimal("1.00")) == Decimal("1")


class TestDailyYieldProcessor:

    def test_pays_active_investment_into_balance(self, session, make_user, make_plan):
        user = make_user("Rita")
        plan = make_plan(name="Plano Ouro", price="500.00", daily_yield="1.4")
        add_investment(session, user, plan, MONDAY + timedelta(days=10))

        summary = DailyYieldProcessor(session).run(now=MONDAY)

        assert summary["status"] == "ok"
        assert summary["yields_paid"] == 1
        assert summary["errors"] == 0
        assert summary["total_paid"] == 7.0
        wallet = wallet_of(session, user)
        assert wallet.balance == Decimal("7")
        assert wallet.referral_balance == Decimal("0")
        txn = session.query(Transaction).filter_by(wallet_id=wallet.id).one()
        assert txn.type == TransactionType.YIELD.value
        assert txn.description == "Rendimento diário do plano Plano Ouro"

    def test_running_twice_pays_twice(self, session, make_user, make_plan):
        user = make_user("Sara")
        plan = make_plan(price="1000.00", daily_yield="1.0")
        add_investment(session, user, plan, MONDAY + timedelta(days=10))

        processor = DailyYieldProcessor(session)
        processor.run(now=MONDAY)
        processor.run(now=MONDAY)

        assert wallet_of(session, user).balance == Decimal("20")

    def test_weekend_touches_nothing(self, session, make_user, make_plan):
        user = make_user("Teo")
        plan = make_plan(price="1000.00")
        add_investment(session, user, plan, SATURDAY - timedelta(days=1))

        summary = DailyYieldProcessor(session).run(now=SATURDAY)

        assert summary["status"] == "weekend"
        assert summary["yields_paid"] == 0
        assert summary["investments_matured"] == 0
        assert wallet_of(session, user).balance == Decimal("0")
        assert session.query(Investment).one().status == InvestmentStatus.ACTIVE.value

    def test_matured_investment_gets_no_yield_in_that_run(self, session, make_user, make_plan):
        user = make_user("Uri")
        plan = make_plan(price="1000.00")
        matured = add_investment(session, user, plan, MONDAY)
        matured_id = matured.id

        summary = DailyYieldProcessor(session).run(now=MONDAY)

        assert summary["investments_matured"] == 1
        assert summary["yields_paid"] == 0
        assert summary["message"] == "Nenhum investimento ativo para processar."
        assert session.get(Investment, matured_id).status == InvestmentStatus.COMPLETED.value
        assert wallet_of(session, user).balance == Decimal("0")

    def test_missing_wallet_is_counted_and_others_still_paid(self, session, make_user, make_plan):
        orphan = make_user("Vera", with_wallet=False)
        paid = make_user("Wil")
        plan = make_plan(price="100.00", daily_yield="2.0")
        add_investment(session, orphan, plan, MONDAY + timedelta(days=5))
        add_investment(session, paid, plan, MONDAY + timedelta(days=5))

        summary = DailyYieldProcessor(session).run(now=MONDAY)

        assert summary["errors"] == 1
        assert summary["yields_paid"] == 1
        assert wallet_of(session, paid).balance == Decimal("2")
        assert "1 rendimentos pagos" in summary["message"]
        assert "1 falhas" in summary["message"]

    def test_completed_investments_are_ignored(self, session, make_user, make_plan):
        user = make_user("Xavi")
        plan = make_plan(price="1000.00")
        add_investment(session, user, plan, MONDAY - timedelta(days=3), status=InvestmentStatus.COMPLETED)

        summary = DailyYieldProcessor(session).run(now=MONDAY)

        assert summary["investments_matured"] == 0
        assert summary["yields_paid"] == 0
